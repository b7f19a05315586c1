"""Credential storage: user identities and password hashing."""

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from passlib.context import CryptContext
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .database import AuthDatabase
from .errors import AccountNotVerified, ConflictError, InvalidCredentials, NotFound
from .models import OTPRole, User, utcnow
from .validators import normalize_email, validate_email, validate_name, validate_password

logger = logging.getLogger(__name__)

RECENT_USER_DAYS = 30


def to_object_id(user_id: str) -> ObjectId:
    """Parse a user id, treating malformed ids as unknown users."""
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        raise NotFound("User not found")


class CredentialStore:
    """Owns user identity records and the password hashing discipline."""

    def __init__(
        self,
        db: AuthDatabase,
        *,
        bcrypt_rounds: int = 12,
        require_verified_login: bool = True,
        clock: Callable = utcnow,
    ):
        self._db = db
        self._clock = clock
        self._require_verified_login = require_verified_login
        # bcrypt salts every hash, so equal passwords never share a hash
        self._pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=bcrypt_rounds
        )

    async def hash_password(self, password: str) -> str:
        return await asyncio.to_thread(self._pwd_context.hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self._pwd_context.verify, password, password_hash)

    async def register(
        self, name: str, email: str, password: str, phone: Optional[str] = None
    ) -> User:
        """Create an unverified, inactive identity.

        Raises ``ValidationError`` for bad input and ``ConflictError`` when the
        email already belongs to a verified account or a registration still
        inside its verification window.
        """
        name = validate_name(name)
        email = validate_email(email)
        validate_password(password)

        now = self._clock()
        existing = await self._db.users.find_one({"email": email})
        if existing:
            grace = timedelta(seconds=self._db.unverified_user_ttl_seconds)
            if existing.get("is_verified") or existing["created_at"] + grace > now:
                raise ConflictError()
            # Expired registration the TTL monitor has not reaped yet
            await self._db.users.delete_one({"_id": existing["_id"], "is_verified": False})

        doc = {
            "name": name,
            "email": email,
            "password_hash": await self.hash_password(password),
            "phone": (phone or "").strip() or None,
            "is_verified": False,
            "is_active": False,
            "confirmed_roles": [],
            "verified_at": None,
            "last_login": None,
            "created_at": now,
        }
        try:
            result = await self._db.users.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError()

        doc["_id"] = result.inserted_id
        logger.info(f"Registered user {result.inserted_id} ({email}), pending verification")
        return User.from_document(doc)

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials and record the login.

        Unknown emails and wrong passwords raise the same ``InvalidCredentials``.
        """
        doc = await self._db.users.find_one({"email": normalize_email(email or "")})
        if not doc:
            # Spend comparable time so response latency does not reveal the email
            await asyncio.to_thread(self._pwd_context.dummy_verify)
            raise InvalidCredentials()

        if not await self.verify_password(password or "", doc["password_hash"]):
            raise InvalidCredentials()

        if self._require_verified_login and not (doc["is_verified"] and doc["is_active"]):
            raise AccountNotVerified()

        now = self._clock()
        await self._db.users.update_one({"_id": doc["_id"]}, {"$set": {"last_login": now}})
        doc["last_login"] = now
        return User.from_document(doc)

    async def rotate_password(self, user_id: str, new_password: str) -> None:
        validate_password(new_password)
        password_hash = await self.hash_password(new_password)
        result = await self._db.users.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"password_hash": password_hash, "password_changed_at": self._clock()}},
        )
        if result.matched_count == 0:
            raise NotFound("User not found")

    async def record_confirmation(self, user_id: str, role: OTPRole) -> User:
        """Add ``role`` to the set of roles that have confirmed this registration."""
        doc = await self._db.users.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {"$addToSet": {"confirmed_roles": role.value}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFound("User not found")
        return User.from_document(doc)

    async def mark_verified(self, user_id: str) -> User:
        """Activate the account. Repeated calls keep the first ``verified_at``."""
        oid = to_object_id(user_id)
        await self._db.users.update_one(
            {"_id": oid, "is_verified": False},
            {"$set": {"is_verified": True, "is_active": True, "verified_at": self._clock()}},
        )
        return await self.get_user(user_id)

    async def get_user(self, user_id: str) -> User:
        doc = await self._db.users.find_one({"_id": to_object_id(user_id)})
        if not doc:
            raise NotFound("User not found")
        return User.from_document(doc)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        doc = await self._db.users.find_one({"email": normalize_email(email or "")})
        return User.from_document(doc) if doc else None

    # ==================== Admin Methods ====================

    async def list_users(self) -> list[User]:
        users = []
        async for doc in self._db.users.find({}).sort("created_at", -1):
            users.append(User.from_document(doc))
        return users

    async def get_stats(self) -> dict:
        recent_since = self._clock() - timedelta(days=RECENT_USER_DAYS)
        return {
            "total_users": await self._db.users.count_documents({}),
            "active_users": await self._db.users.count_documents({"is_active": True}),
            "verified_users": await self._db.users.count_documents({"is_verified": True}),
            "recent_users": await self._db.users.count_documents(
                {"created_at": {"$gte": recent_since}}
            ),
        }
