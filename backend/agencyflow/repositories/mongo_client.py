"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    users = db["users"]
    users.create_index("user_id", unique=True)
    users.create_index([("role", ASCENDING), ("is_active", ASCENDING)])

    projects = db["projects"]
    projects.create_index("project_id", unique=True)
    projects.create_index("manager_id")
    projects.create_index("team_lead_id")
    projects.create_index("designer_id")

    work_items = db["work_items"]
    work_items.create_index("work_item_id", unique=True)
    work_items.create_index([("project_id", ASCENDING), ("kind", ASCENDING)])
    work_items.create_index([("assigned_actor_id", ASCENDING), ("status", ASCENDING)])

    chat_messages = db["chat_messages"]
    chat_messages.create_index("message_id", unique=True)
    chat_messages.create_index([("project_id", ASCENDING), ("created_at", DESCENDING)])

    # Recent-first listing per recipient, de-duplication per event
    notifications = db["notifications"]
    notifications.create_index("notification_id", unique=True)
    notifications.create_index(
        [("event_id", ASCENDING), ("recipient_user_id", ASCENDING)],
        unique=True,
        name="event_recipient_unique"
    )
    notifications.create_index([("recipient_user_id", ASCENDING), ("created_at", DESCENDING)])
    notifications.create_index([("recipient_user_id", ASCENDING), ("is_read", ASCENDING)])

    audit_log = db["audit_log"]
    audit_log.create_index("audit_entry_id", unique=True)
    audit_log.create_index([("actor_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_log.create_index([("entity_type", ASCENDING), ("entity_id", ASCENDING)])
    audit_log.create_index("timestamp", background=True)

    system_settings = db["system_settings"]
    system_settings.create_index("key", unique=True)

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
