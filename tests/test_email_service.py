from unittest.mock import MagicMock, patch

from auth.email_service import EmailService


def smtp_service(**overrides):
    options = dict(
        smtp_host="smtp.example.com",
        smtp_user="mailer@example.com",
        smtp_password="secret",
        admin_email="admin@example.com",
    )
    options.update(overrides)
    return EmailService(**options)


def test_console_fallback_shows_code(capsys):
    service = EmailService()

    assert not service.is_configured
    assert service.send_user_otp("Ann Lee", "ann@x.com", "123456", 10)
    assert "123456" in capsys.readouterr().out


def test_admin_code_goes_to_configured_recipient():
    service = smtp_service()
    with patch("auth.email_service.smtplib.SMTP") as smtp:
        server = smtp.return_value.__enter__.return_value
        assert service.send_admin_otp("Ann Lee", "ann@x.com", "654321", 10)

    args = server.sendmail.call_args.args
    assert args[0] == "mailer@example.com"
    assert args[1] == "admin@example.com"
    assert "654321" in args[2]


def test_missing_admin_recipient_is_reported(capsys):
    service = smtp_service(admin_email=None)
    with patch("auth.email_service.smtplib.SMTP") as smtp:
        assert not service.send_admin_otp("Ann Lee", "ann@x.com", "654321", 10)

    smtp.assert_not_called()
    assert "654321" in capsys.readouterr().out


def test_smtp_failure_returns_false_without_raising(caplog):
    service = smtp_service()
    with patch("auth.email_service.smtplib.SMTP", side_effect=OSError("connection refused")):
        assert not service.send_welcome("Ann Lee", "ann@x.com")

    assert "Failed to send email to ann@x.com" in caplog.text


def test_reset_email_contains_link():
    service = smtp_service()
    service.send = MagicMock(return_value=True)

    service.send_password_reset(
        "Ann <b>Lee</b>", "ann@x.com", "https://app.example.com/reset-password?token=abc", 60
    )

    to, subject, html = service.send.call_args.args
    assert to == "ann@x.com"
    assert "Password Reset" in subject
    assert "https://app.example.com/reset-password?token=abc" in html
    assert "<b>Lee</b>" not in html
