"""
Database Helper Functions

MongoDB helpers shared by the repositories and routers.
The connection is created from DATABASE_URL and DATABASE_NAME; endpoints
receive the database handle through the ``get_db`` dependency.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, GEOSPHERE, MongoClient
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)

_client = None
db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]

USERS = "users"
BOOTCAMPS = "bootcamps"
COURSES = "courses"
REVIEWS = "reviews"

# Never serialized outward
PRIVATE_FIELDS = ("password_hash", "reset_password_token", "reset_password_expire")


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db


def ensure_indexes(database: Database) -> None:
    """Create the uniqueness constraints the API relies on."""
    database[USERS].create_index([("email", ASCENDING)], unique=True)
    database[BOOTCAMPS].create_index([("name", ASCENDING)], unique=True)
    database[REVIEWS].create_index([("bootcamp", ASCENDING), ("user", ASCENDING)], unique=True)


def ensure_geo_index(database: Database) -> None:
    database[BOOTCAMPS].create_index([("location", GEOSPHERE)])


def object_id(value: Union[str, ObjectId]) -> ObjectId:
    """Parse an identifier, raising bson.errors.InvalidId when malformed."""
    if isinstance(value, ObjectId):
        return value
    return ObjectId(value)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> ObjectId:
    """Insert a single document with timestamps"""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(exclude_none=True)
    else:
        data_dict = data.copy()

    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now

    result = database[collection_name].insert_one(data_dict)
    return result.inserted_id


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> list:
    """Get documents from collection"""
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize(value: Any) -> Any:
    """Make a stored document JSON friendly: ``_id`` becomes ``id`` and
    ObjectIds become strings. Private user fields are dropped."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize(item) for item in value]
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if key in PRIVATE_FIELDS:
                continue
            out["id" if key == "_id" else key] = serialize(item)
        return out
    return value
