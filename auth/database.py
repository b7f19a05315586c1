"""MongoDB connection and index management for the credential core."""

import logging
from typing import Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING

logger = logging.getLogger(__name__)


class AuthDatabase:
    """Async MongoDB handle shared by every component of the core."""

    def __init__(
        self,
        mongodb_uri: str,
        database_name: str = "credential_core",
        *,
        max_pool_size: int = 10,
        server_selection_timeout_ms: int = 5000,
        socket_timeout_ms: int = 45000,
        unverified_user_ttl_seconds: int = 600,
    ):
        """Initialize database connection settings."""
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._mongodb_uri = mongodb_uri
        self._database_name = database_name
        self._max_pool_size = max_pool_size
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._socket_timeout_ms = socket_timeout_ms
        self.unverified_user_ttl_seconds = unverified_user_ttl_seconds

    @classmethod
    def from_settings(cls, settings) -> "AuthDatabase":
        return cls(
            settings.mongodb_uri,
            settings.mongodb_database,
            max_pool_size=settings.mongodb_max_pool_size,
            server_selection_timeout_ms=settings.mongodb_server_selection_timeout_ms,
            socket_timeout_ms=settings.mongodb_socket_timeout_ms,
            unverified_user_ttl_seconds=settings.unverified_user_ttl_seconds,
        )

    async def connect(self) -> None:
        """Connect to MongoDB, confirm it answers, and create indexes.

        Raises the driver's error if the server is unreachable; callers at
        startup let it propagate so the process exits.
        """
        self._client = AsyncIOMotorClient(
            self._mongodb_uri,
            maxPoolSize=self._max_pool_size,
            serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            socketTimeoutMS=self._socket_timeout_ms,
        )
        self._db = self._client[self._database_name]
        await self._client.admin.command("ping")
        logger.info(f"Connected to MongoDB database '{self._database_name}'")
        await self.ensure_indexes()

    def use_database(self, database: AsyncIOMotorDatabase) -> None:
        """Bind to an already-open database (used by tests and tooling)."""
        self._db = database

    async def ensure_indexes(self) -> None:
        # Unique identity per normalized email
        await self.users.create_index("email", unique=True)
        # Unverified registrations are garbage after the grace window
        await self.users.create_index(
            [("created_at", ASCENDING)],
            name="unverified_user_ttl",
            expireAfterSeconds=self.unverified_user_ttl_seconds,
            partialFilterExpression={"is_verified": False},
        )

        # A passcode value is unique among live (unconsumed) passcodes
        await self.otp_tokens.create_index(
            "token",
            name="live_token_unique",
            unique=True,
            partialFilterExpression={"used": False},
        )
        await self.otp_tokens.create_index(
            [("user_id", ASCENDING), ("role", ASCENDING), ("used", ASCENDING)]
        )
        await self.otp_tokens.create_index("expires_at", expireAfterSeconds=0)

        await self.password_reset_tokens.create_index("token_hash", unique=True)
        await self.password_reset_tokens.create_index("user_id")
        await self.password_reset_tokens.create_index("email")
        await self.password_reset_tokens.create_index("used")

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
        self._db = None

    def _collection(self, name: str) -> AsyncIOMotorCollection:
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._db[name]

    @property
    def users(self) -> AsyncIOMotorCollection:
        return self._collection("users")

    @property
    def otp_tokens(self) -> AsyncIOMotorCollection:
        return self._collection("otp_tokens")

    @property
    def password_reset_tokens(self) -> AsyncIOMotorCollection:
        return self._collection("password_reset_tokens")
