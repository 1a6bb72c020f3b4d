"""
MongoDB Connection Utility

MongoDB stores:
- Uploaded student CVs (original file bytes + extracted text)

WHY MongoDB for these?
- Binary blobs with free-form metadata stay out of the relational schema
- Each CV is self-contained; PostgreSQL only keeps the document id
"""
import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from inf_platform.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the documents database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.error("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "student_cvs": "student_cvs",
}


def init_mongo_indexes():
    """
    Create indexes for CV lookups.
    Call this once during app startup.
    """
    db = get_mongo_db()
    db[COLLECTIONS["student_cvs"]].create_index([("student_id", 1), ("uploaded_at", -1)])
    logger.info("MongoDB indexes created")
