"""MongoDB connection and Beanie document registration."""
from contextlib import asynccontextmanager

from beanie import PydanticObjectId, init_beanie
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.errors import NotFoundError
from app.models import (
    Member,
    DuesRecord,
    Expenditure,
    BillingSettings,
)


_client = None


async def db_startup():
    """Connect to MongoDB and initialize Beanie ODM."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(
        database=_client[settings.mongodb_db_name],
        document_models=[
            Member,
            DuesRecord,
            Expenditure,
            BillingSettings,
        ],
    )


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None


async def init_db():
    """Alias for db_startup."""
    await db_startup()


@asynccontextmanager
async def transaction():
    """Yield a session with an open multi-document transaction.

    The transaction commits when the block exits normally and aborts on any
    exception. Requires MongoDB running as a replica set.
    """
    if _client is None:
        raise RuntimeError("Database is not initialised")
    async with await _client.start_session() as session:
        async with session.start_transaction():
            yield session


def to_object_id(value: str, what: str = "Document") -> PydanticObjectId:
    """Parse a path/body id; malformed ids are reported as not found."""
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError, ValueError):
        raise NotFoundError(f"{what} not found")
