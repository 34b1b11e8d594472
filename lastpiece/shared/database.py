import asyncio
import logging
from typing import List, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from lastpiece.shared.utils import Settings, DatabaseUnavailableException

logger = logging.getLogger(__name__)


def connection_strings(settings: Settings) -> List[str]:
    """Candidate URIs in the order they are tried.

    Production goes straight to the hosted cluster; everywhere else the
    local instance is tried first and the hosted one is the fallback.
    """
    uris = []
    if not settings.is_production:
        uris.append(settings.MONGODB_LOCAL_URI)
    if settings.MONGODB_URI:
        uris.append(settings.MONGODB_URI)
    return uris


class Database:
    """Owns the Motor client and hands out the storefront collections."""

    def __init__(self, client: Optional[AsyncIOMotorClient], name: str, connected: bool = True):
        self.client = client
        self.name = name
        self.connected = client is not None and connected
        self._db = client[name] if client is not None else None

    @classmethod
    def unavailable(cls, name: str) -> "Database":
        return cls(None, name, connected=False)

    @classmethod
    async def connect(cls, settings: Settings) -> "Database":
        for uri in connection_strings(settings):
            is_local = "localhost" in uri or "127.0.0.1" in uri
            for attempt in range(settings.DB_MAX_RETRIES + 1):
                logger.info("Attempting to connect to %s MongoDB", "local" if is_local else "hosted")
                client = AsyncIOMotorClient(
                    uri,
                    maxPoolSize=10,
                    serverSelectionTimeoutMS=settings.DB_SERVER_SELECTION_TIMEOUT_MS,
                    socketTimeoutMS=45000,
                )
                try:
                    await client.admin.command("ping")
                except PyMongoError as e:
                    client.close()
                    logger.error("MongoDB connection failed: %s", e)
                    if attempt < settings.DB_MAX_RETRIES:
                        logger.info(
                            "Retrying in %ss (%d/%d)",
                            settings.DB_RETRY_DELAY_SECONDS, attempt + 1, settings.DB_MAX_RETRIES,
                        )
                        await asyncio.sleep(settings.DB_RETRY_DELAY_SECONDS)
                    continue
                logger.info("MongoDB connected")
                return cls(client, settings.DATABASE_NAME)
            logger.warning("Giving up on this connection string, trying fallback")

        logger.error("Could not connect to any MongoDB database; API endpoints will answer 503")
        return cls.unavailable(settings.DATABASE_NAME)

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
        except PyMongoError:
            self.connected = False
            return False
        self.connected = True
        return True

    def close(self):
        if self.client is not None:
            self.client.close()
            self.connected = False
            logger.info("MongoDB disconnected")

    async def create_indexes(self):
        await self.users.create_index("email", unique=True)
        await self.products.create_index("slug", unique=True)
        await self.products.create_index("sku", unique=True)
        await self.products.create_index([("category", ASCENDING)])
        await self.products.create_index([("status", ASCENDING)])
        await self.products.create_index([("created_at", DESCENDING)])
        await self.categories.create_index("slug", unique=True)
        await self.carts.create_index("user_id", unique=True)
        await self.wishlists.create_index("user_id", unique=True)
        await self.orders.create_index("order_number", unique=True)
        await self.orders.create_index("user_id")
        await self.orders.create_index("status")
        await self.orders.create_index([("created_at", DESCENDING)])
        await self.reviews.create_index("product_id")
        await self.reviews.create_index("user_id")
        await self.reviews.create_index("status")

    def __getitem__(self, collection: str):
        if self._db is None:
            raise DatabaseUnavailableException()
        return self._db[collection]

    @property
    def users(self):
        return self["users"]

    @property
    def products(self):
        return self["products"]

    @property
    def categories(self):
        return self["categories"]

    @property
    def carts(self):
        return self["carts"]

    @property
    def wishlists(self):
        return self["wishlists"]

    @property
    def orders(self):
        return self["orders"]

    @property
    def reviews(self):
        return self["reviews"]

    @property
    def settings(self):
        return self["settings"]


# --- Dependencies ---
def get_db(request: Request) -> Database:
    return request.app.state.db

def require_db(request: Request) -> Database:
    db = get_db(request)
    if not db.connected:
        raise DatabaseUnavailableException()
    return db
