"""Database models and connection setup."""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from config.settings import settings
from utils.logger import setup_logger

logger = setup_logger(__name__)

# Collection names
USERS = "users"
AUTH_SESSIONS = "auth_sessions"
USER_SETTINGS = "user_settings"
CALORIE_ENTRIES = "calorie_entries"
WORKOUT_DATA = "workout_data"
WEIGHT_ENTRIES = "weight_entries"


class Database:
    """Database connection manager."""

    client: Optional[AsyncIOMotorClient] = None


db = Database()


async def connect_to_mongo():
    """Create database connection."""
    db.client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
    logger.info(f"Connected to MongoDB database: {settings.mongodb_db_name}")


async def close_mongo_connection():
    """Close database connection."""
    if db.client:
        db.client.close()
        db.client = None
        logger.info("Disconnected from MongoDB")


async def init_mongo():
    """Initialize MongoDB connection and all collections with indexes."""
    await connect_to_mongo()

    database = get_database()

    # Accounts: one per email
    await database[USERS].create_index([("email", ASCENDING)], unique=True)

    # Auth sessions expire on their own
    sessions = database[AUTH_SESSIONS]
    await sessions.create_index([("user_id", ASCENDING)])
    await sessions.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)

    # Entry collections record pre-images so delete events can be routed to their owner
    existing = set(await database.list_collection_names())
    for name in (CALORIE_ENTRIES, WEIGHT_ENTRIES):
        if name in existing:
            await database.command({"collMod": name, "changeStreamPreAndPostImages": {"enabled": True}})
        else:
            await database.create_collection(name, changeStreamPreAndPostImages={"enabled": True})

    # Per-user collections; settings and workout data are keyed by user id
    await database[CALORIE_ENTRIES].create_index([("user_id", ASCENDING), ("day", ASCENDING)])
    await database[WEIGHT_ENTRIES].create_index([("user_id", ASCENDING), ("date", ASCENDING)])

    logger.info("MongoDB initialized: All collections created with indexes")


def get_client() -> AsyncIOMotorClient:
    """Get client instance."""
    if db.client is None:
        raise RuntimeError("MongoDB is not connected; call init_mongo() first")
    return db.client


def get_database() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return get_client()[settings.mongodb_db_name]
