"""MongoDB connection and Beanie initialisation."""

from typing import Optional

from beanie import init_beanie
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.core.logging import logger


class Database:
    """Holds the Motor client shared by every Beanie model."""

    client: Optional[AsyncIOMotorClient] = None

    @classmethod
    async def connect_db(cls, client: Optional[AsyncIOMotorClient] = None):
        """
        Connect and register the document models.
        Tests pass an in-memory client instead of a server URL.
        """
        from app.models import DOCUMENT_MODELS

        cls.client = client or AsyncIOMotorClient(settings.MONGODB_URL)
        await init_beanie(
            database=cls.client[settings.DATABASE_NAME],
            document_models=DOCUMENT_MODELS,
        )
        logger.info(
            f"Connected to MongoDB database {settings.DATABASE_NAME} "
            f"({len(DOCUMENT_MODELS)} collections)"
        )

    @classmethod
    async def close_db(cls):
        if cls.client is None:
            return
        cls.client.close()
        cls.client = None
        logger.info("Closed MongoDB connection")

    @classmethod
    def is_connected(cls) -> bool:
        return cls.client is not None


def is_valid_id(document_id: str) -> bool:
    """Whether a string can address a stored record."""
    return bool(document_id) and ObjectId.is_valid(document_id)
