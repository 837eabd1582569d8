"""
Database helpers

MongoDB connection and small document helpers shared by the API.
Each Pydantic model in schemas.py maps to a collection (lowercased class name).
"""
import os
import logging
from datetime import datetime, timezone
from typing import Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

load_dotenv()

logger = logging.getLogger(__name__)

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]


class DatabaseNotConfigured(RuntimeError):
    pass


def to_str_id(doc):
    if doc is None:
        return None
    doc["id"] = str(doc.pop("_id"))
    return doc


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document with created/updated timestamps and return its id."""
    if db is None:
        raise DatabaseNotConfigured("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")

    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def ensure_indexes(store) -> None:
    # order_id uniqueness is enforced here; the allocator retries on violations
    store["order"].create_index("order_id", unique=True)
    store["order"].create_index([("created_at", DESCENDING)])

    store["product"].create_index("is_new_arrival")
    store["product"].create_index("is_trending")
    store["product"].create_index([("display_order", ASCENDING), ("created_at", DESCENDING)])
    store["product"].create_index([("created_at", DESCENDING)])

    store["session"].create_index("token", unique=True)
    logger.debug("Indexes ensured on %s", store.name)
