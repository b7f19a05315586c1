import pytest

from auth.errors import (
    AccountNotVerified,
    ConflictError,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from auth.models import OTPRole
from conftest import STRONG_PASSWORD


async def register_verified(credentials, email="ann@x.com", password=STRONG_PASSWORD):
    user = await credentials.register("Ann Lee", email, password, "+1555")
    return await credentials.mark_verified(user.id)


@pytest.mark.asyncio
async def test_register_creates_inactive_unverified_user(credentials, database):
    user = await credentials.register("  Ann Lee ", "Ann@X.com", STRONG_PASSWORD, "+1555")

    assert user.name == "Ann Lee"
    assert user.email == "ann@x.com"
    assert user.phone == "+1555"
    assert not user.is_verified
    assert not user.is_active

    doc = await database.users.find_one({"email": "ann@x.com"})
    assert doc["password_hash"] != STRONG_PASSWORD
    assert STRONG_PASSWORD not in doc.values()


@pytest.mark.asyncio
async def test_same_password_produces_different_hashes(credentials, database):
    await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)
    await credentials.register("Bob Ray", "bob@x.com", STRONG_PASSWORD)

    ann = await database.users.find_one({"email": "ann@x.com"})
    bob = await database.users.find_one({"email": "bob@x.com"})
    assert ann["password_hash"] != bob["password_hash"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,email,password",
    [
        ("A", "ann@x.com", STRONG_PASSWORD),
        ("A" * 51, "ann@x.com", STRONG_PASSWORD),
        ("Ann Lee", "ann@x", STRONG_PASSWORD),
        ("Ann Lee", "ann x@x.com", STRONG_PASSWORD),
        ("Ann Lee", "ann@x.com", "Sh0rt!"),
        ("Ann Lee", "ann@x.com", "password1!"),
        ("Ann Lee", "ann@x.com", "PASSWORD1!"),
        ("Ann Lee", "ann@x.com", "Password!!"),
        ("Ann Lee", "ann@x.com", "Password11"),
    ],
)
async def test_register_rejects_invalid_input(credentials, name, email, password):
    with pytest.raises(ValidationError):
        await credentials.register(name, email, password)


@pytest.mark.asyncio
async def test_register_conflicts_with_verified_account(credentials):
    await register_verified(credentials)

    with pytest.raises(ConflictError):
        await credentials.register("Ann Other", "ANN@x.com", STRONG_PASSWORD)


@pytest.mark.asyncio
async def test_register_conflicts_with_pending_registration(credentials, clock):
    await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)
    clock.advance(minutes=5)

    with pytest.raises(ConflictError):
        await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)


@pytest.mark.asyncio
async def test_expired_pending_registration_can_be_replaced(credentials, clock, database):
    first = await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)
    clock.advance(minutes=11)

    second = await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)

    assert second.id != first.id
    assert await database.users.count_documents({"email": "ann@x.com"}) == 1


@pytest.mark.asyncio
async def test_authenticate_errors_are_indistinguishable(credentials):
    await register_verified(credentials)

    with pytest.raises(InvalidCredentials) as wrong_password:
        await credentials.authenticate("ann@x.com", "Wr0ngPass!")
    with pytest.raises(InvalidCredentials) as unknown_email:
        await credentials.authenticate("nobody@x.com", STRONG_PASSWORD)

    assert wrong_password.value.to_response() == unknown_email.value.to_response()


@pytest.mark.asyncio
async def test_authenticate_requires_verification(credentials):
    await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)

    with pytest.raises(AccountNotVerified):
        await credentials.authenticate("ann@x.com", STRONG_PASSWORD)


@pytest.mark.asyncio
async def test_authenticate_records_last_login(credentials, clock):
    await register_verified(credentials)
    clock.advance(hours=1)

    user = await credentials.authenticate("  ANN@x.com ", STRONG_PASSWORD)

    assert user.last_login == clock.now
    stored = await credentials.get_user(user.id)
    assert stored.last_login == clock.now


@pytest.mark.asyncio
async def test_rotate_password_rehashes(credentials, database):
    user = await register_verified(credentials)
    before = (await database.users.find_one({"email": "ann@x.com"}))["password_hash"]

    await credentials.rotate_password(user.id, "NewPass1!")

    after = (await database.users.find_one({"email": "ann@x.com"}))["password_hash"]
    assert after != before
    await credentials.authenticate("ann@x.com", "NewPass1!")
    with pytest.raises(InvalidCredentials):
        await credentials.authenticate("ann@x.com", STRONG_PASSWORD)


@pytest.mark.asyncio
async def test_rotate_password_enforces_policy(credentials):
    user = await register_verified(credentials)

    with pytest.raises(ValidationError):
        await credentials.rotate_password(user.id, "weak")


@pytest.mark.asyncio
async def test_mark_verified_is_idempotent(credentials, clock):
    user = await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)

    first = await credentials.mark_verified(user.id)
    clock.advance(minutes=3)
    second = await credentials.mark_verified(user.id)

    assert first.is_verified and first.is_active
    assert second.verified_at == first.verified_at


@pytest.mark.asyncio
async def test_record_confirmation_collects_roles(credentials):
    user = await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)

    await credentials.record_confirmation(user.id, OTPRole.USER)
    updated = await credentials.record_confirmation(user.id, OTPRole.USER)

    assert updated.confirmed_roles == [OTPRole.USER]
    assert not updated.is_verified


@pytest.mark.asyncio
async def test_unknown_or_malformed_user_id(credentials):
    with pytest.raises(NotFound):
        await credentials.get_user("not-an-object-id")
    with pytest.raises(NotFound):
        await credentials.get_user("0123456789ab0123456789ab")


@pytest.mark.asyncio
async def test_password_hash_never_serialized(credentials):
    user = await credentials.register("Ann Lee", "ann@x.com", STRONG_PASSWORD)

    assert "password_hash" not in user.model_dump()
    assert "password_hash" not in user.public()
    assert user.password_hash


@pytest.mark.asyncio
async def test_stats(credentials):
    await register_verified(credentials)
    await credentials.register("Bob Ray", "bob@x.com", STRONG_PASSWORD)

    stats = await credentials.get_stats()

    assert stats == {
        "total_users": 2,
        "active_users": 1,
        "verified_users": 1,
        "recent_users": 2,
    }
