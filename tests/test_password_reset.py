import asyncio
import hashlib

import pytest

from auth.errors import InvalidCredentials, InvalidOrExpiredToken, NotFound, ValidationError
from conftest import STRONG_PASSWORD


async def register_verified(credentials, email="ann@x.com"):
    user = await credentials.register("Ann Lee", email, STRONG_PASSWORD)
    return await credentials.mark_verified(user.id)


@pytest.mark.asyncio
async def test_unknown_email_is_not_found(resets):
    with pytest.raises(NotFound):
        await resets.issue_reset("nobody@x.com")


@pytest.mark.asyncio
async def test_only_digest_is_persisted(resets, credentials, database, clock):
    await register_verified(credentials)

    raw, user = await resets.issue_reset("ANN@x.com", ip_address="10.0.0.1", user_agent="pytest")

    assert user.email == "ann@x.com"
    doc = await database.password_reset_tokens.find_one({})
    assert doc["token_hash"] == hashlib.sha256(raw.encode()).hexdigest()
    assert raw not in doc.values()
    assert doc["ip_address"] == "10.0.0.1"
    assert doc["user_agent"] == "pytest"
    assert (doc["expires_at"] - clock.now).total_seconds() == 3600


@pytest.mark.asyncio
async def test_token_redeems_exactly_once(resets, credentials):
    await register_verified(credentials)
    raw, _ = await resets.issue_reset("ann@x.com")

    await resets.redeem(raw, "NewPass1!")

    with pytest.raises(InvalidOrExpiredToken):
        await resets.redeem(raw, "Other1!")
    with pytest.raises(InvalidOrExpiredToken):
        await resets.redeem(raw, "AnotherPass1!")

    await credentials.authenticate("ann@x.com", "NewPass1!")
    with pytest.raises(InvalidCredentials):
        await credentials.authenticate("ann@x.com", STRONG_PASSWORD)


@pytest.mark.asyncio
async def test_weak_password_keeps_token_usable(resets, credentials):
    await register_verified(credentials)
    raw, _ = await resets.issue_reset("ann@x.com")

    with pytest.raises(ValidationError):
        await resets.redeem(raw, "weak")

    await resets.redeem(raw, "NewPass1!")


@pytest.mark.asyncio
async def test_new_token_invalidates_previous(resets, credentials):
    await register_verified(credentials)
    first, _ = await resets.issue_reset("ann@x.com")
    second, _ = await resets.issue_reset("ann@x.com")

    with pytest.raises(InvalidOrExpiredToken):
        await resets.redeem(first, "NewPass1!")
    await resets.redeem(second, "NewPass1!")


@pytest.mark.asyncio
async def test_token_expires_after_an_hour(resets, credentials, clock):
    await register_verified(credentials)
    raw, _ = await resets.issue_reset("ann@x.com")
    clock.advance(minutes=61)

    with pytest.raises(InvalidOrExpiredToken):
        await resets.redeem(raw, "NewPass1!")


@pytest.mark.asyncio
async def test_unknown_token_is_rejected(resets):
    with pytest.raises(InvalidOrExpiredToken):
        await resets.redeem("f" * 64, "NewPass1!")


@pytest.mark.asyncio
async def test_concurrent_redemption_succeeds_once(resets, credentials):
    await register_verified(credentials)
    raw, _ = await resets.issue_reset("ann@x.com")

    results = await asyncio.gather(
        *[resets.redeem(raw, f"NewPass{i}!") for i in range(4)],
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(isinstance(f, InvalidOrExpiredToken) for f in failures)


@pytest.mark.asyncio
async def test_purge(resets, credentials, database, clock):
    await register_verified(credentials, "ann@x.com")
    await register_verified(credentials, "bob@x.com")
    await register_verified(credentials, "cid@x.com")

    used, _ = await resets.issue_reset("ann@x.com")
    await resets.redeem(used, "NewPass1!")
    await resets.issue_reset("bob@x.com")
    clock.advance(minutes=30)
    await resets.issue_reset("cid@x.com")

    # Nothing expired yet, the used token is recent
    assert await resets.purge() == 0

    clock.advance(minutes=45)
    # ann's and bob's tokens expired; cid's is still live
    assert await resets.purge() == 2
    remaining = [doc["email"] async for doc in database.password_reset_tokens.find({})]
    assert remaining == ["cid@x.com"]
