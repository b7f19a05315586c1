"""Subjects and HTML bodies for the messages the notifier delivers."""

from datetime import datetime
from html import escape

_STYLE = """
        body { font-family: 'Segoe UI', Tahoma, sans-serif; color: #333; }
        .container { max-width: 640px; margin: 0 auto; border: 1px solid #e5e7eb;
                     border-radius: 12px; overflow: hidden; }
        .header { background: #051C3B; color: #fff; padding: 24px; text-align: center; }
        .body { padding: 24px; }
        .code { font-size: 32px; font-weight: bold; letter-spacing: 6px; color: #051C3B;
                background: #f5f5f5; padding: 16px; text-align: center;
                border-radius: 8px; margin: 20px 0; }
        .button { background: #4ecdc4; color: #051C3B; text-decoration: none;
                  padding: 14px 32px; border-radius: 30px; font-weight: 700;
                  display: inline-block; }
        .footer { color: #6b7280; font-size: 13px; text-align: center; padding: 18px;
                  background: #f9fafb; border-top: 1px solid #e5e7eb; }
"""


def _wrap(sender: str, heading: str, content: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{escape(sender)}</h1>
            <p>{heading}</p>
        </div>
        <div class="body">{content}</div>
        <div class="footer">&copy; {datetime.now().year} {escape(sender)}. All rights reserved.</div>
    </div>
</body>
</html>
"""


def user_otp_email(sender: str, name: str, otp: str, expiry_minutes: int) -> tuple[str, str]:
    subject = f"Registration Verification - {sender}"
    content = f"""
            <p><strong>Hello {escape(name)},</strong></p>
            <p>Thank you for registering. Enter this code to verify your email:</p>
            <div class="code">{otp}</div>
            <p>This code will expire in {expiry_minutes} minutes. Your account also
               needs administrator approval before it becomes active.</p>
            <p>If you didn't request this code, you can safely ignore this email.</p>
"""
    return subject, _wrap(sender, "Verify your registration", content)


def admin_otp_email(
    sender: str, name: str, email: str, otp: str, expiry_minutes: int
) -> tuple[str, str]:
    subject = "New User Registration - Admin Verification Required"
    content = f"""
            <p><strong>A new user has registered and is awaiting approval.</strong></p>
            <p>Name: {escape(name)}<br>Email: {escape(email)}</p>
            <p>Share this approval code with the user only if the registration is legitimate:</p>
            <div class="code">{otp}</div>
            <p>This code will expire in {expiry_minutes} minutes.</p>
"""
    return subject, _wrap(sender, "Admin verification required", content)


def welcome_email(sender: str, name: str, email: str) -> tuple[str, str]:
    subject = f"Welcome to {sender} - Account Verified"
    content = f"""
            <p><strong>Welcome, {escape(name)}!</strong></p>
            <p>Your account <strong>{escape(email)}</strong> has been verified and is now active.
               You can sign in at any time.</p>
"""
    return subject, _wrap(sender, "Account verified", content)


def password_reset_email(
    sender: str, name: str, reset_url: str, expiry_minutes: int
) -> tuple[str, str]:
    subject = f"Password Reset Request - {sender}"
    content = f"""
            <p><strong>Hello {escape(name)},</strong></p>
            <p>We received a request to reset your password. If you made this request,
               use the button below:</p>
            <p style="text-align: center;"><a class="button" href="{escape(reset_url)}">Reset My Password</a></p>
            <ul>
                <li>This link will expire in {expiry_minutes} minutes</li>
                <li>If you didn't request this reset, please ignore this email</li>
                <li>Your password will remain unchanged until you create a new one</li>
            </ul>
            <p>If the button doesn't work, paste this link into your browser:<br>
               <code>{escape(reset_url)}</code></p>
"""
    return subject, _wrap(sender, "Password reset request", content)


def password_reset_success_email(sender: str, name: str) -> tuple[str, str]:
    subject = f"Password Changed - {sender}"
    content = f"""
            <p><strong>Hello {escape(name)},</strong></p>
            <p>Your password has been changed successfully.</p>
            <p>If you did not make this change, reset your password immediately and
               contact support.</p>
"""
    return subject, _wrap(sender, "Password changed", content)
