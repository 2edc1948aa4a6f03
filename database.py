"""MongoDB access helpers.

The client is created lazily and handed to request handlers through the
``get_db`` dependency so tests can swap in an in-memory database.
"""
import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

import config

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        _client = MongoClient(config.DATABASE_URL, serverSelectionTimeoutMS=5000)
    return _client


def get_db() -> Database:
    return get_client()[config.DATABASE_NAME]


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


def utcnow() -> datetime:
    # Mongo hands datetimes back naive (UTC); keep everything naive to compare safely
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Union[datetime, date, str]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_obj_id(id_str: str) -> ObjectId:
    if not isinstance(id_str, str) or not ObjectId.is_valid(id_str):
        raise HTTPException(status_code=400, detail="Invalid id")
    return ObjectId(id_str)


def _to_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        # Unset optionals stay absent; sparse unique indexes still index explicit nulls
        return data.model_dump(exclude_none=True)
    return dict(data)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    data_dict = _to_dict(data)
    now = utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def find_by_id(db: Database, collection_name: str, id_str: str, projection: Optional[dict] = None) -> Optional[dict]:
    return db[collection_name].find_one({"_id": to_obj_id(id_str)}, projection)


def update_by_id(db: Database, collection_name: str, id_str: str, changes: Dict[str, Any]) -> Optional[dict]:
    """Apply ``$set`` of ``changes`` and return the updated document, or None."""
    changes = {**changes, "updated_at": utcnow()}
    result = db[collection_name].update_one({"_id": to_obj_id(id_str)}, {"$set": changes})
    if result.matched_count == 0:
        return None
    return find_by_id(db, collection_name, id_str)


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly: ``_id`` becomes ``id``, passwords are dropped."""
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            if k == "password":
                continue
            if k == "_id":
                out["id"] = str(v)
                continue
            out[k] = serialize(v)
        return out
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _walk(node: Any, parts: List[str], visit: Callable[[Any], Any]) -> None:
    if isinstance(node, list):
        for item in node:
            _walk(item, parts, visit)
        return
    if not isinstance(node, dict) or parts[0] not in node:
        return
    if len(parts) == 1:
        node[parts[0]] = visit(node[parts[0]])
    else:
        _walk(node[parts[0]], parts[1:], visit)


def populate(db: Database, docs: List[dict], path: str, collection_name: str, fields: Optional[Iterable[str]] = None) -> List[dict]:
    """Replace id strings found at ``path`` with the referenced documents.

    ``path`` may cross arrays of sub-documents (``favourite_partners.partner_id``).
    Ids that do not resolve are left as they are.
    """
    parts = path.split(".")
    ids = set()

    def collect(value):
        ids.update(value if isinstance(value, list) else [value])
        return value

    for doc in docs:
        _walk(doc, parts, collect)

    object_ids = [ObjectId(i) for i in ids if isinstance(i, str) and ObjectId.is_valid(i)]
    if not object_ids:
        return docs

    projection = dict.fromkeys(fields, 1) if fields else {"password": 0}
    lookup = {str(d["_id"]): d for d in db[collection_name].find({"_id": {"$in": object_ids}}, projection)}

    def replace(value):
        if isinstance(value, list):
            return [lookup.get(v, v) if isinstance(v, str) else v for v in value]
        return lookup.get(value, value) if isinstance(value, str) else value

    for doc in docs:
        _walk(doc, parts, replace)
    return docs


def pagination_info(page: int, limit: int, total_count: int) -> Dict[str, Any]:
    total_pages = math.ceil(total_count / limit)
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total_count,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
        "limit": limit,
    }


def paginate(
    collection: Collection,
    query: dict,
    page: int,
    limit: int,
    sort_field: str,
    sort_order: str = "desc",
    projection: Optional[dict] = None,
) -> Tuple[List[dict], Dict[str, Any]]:
    direction = ASCENDING if sort_order == "asc" else DESCENDING
    skip = (page - 1) * limit
    cursor = (
        collection.find(query, projection)
        .sort([(sort_field, direction), ("_id", direction)])
        .skip(skip)
        .limit(limit)
    )
    docs = list(cursor)
    total_count = collection.count_documents(query)
    return docs, pagination_info(page, limit, total_count)


def ensure_indexes(db: Database) -> None:
    for name, public_id in (("client", "client_id"), ("partner", "partner_id"), ("admin", "admin_id")):
        db[name].create_index("email", unique=True)
        db[name].create_index("username", unique=True)
        db[name].create_index(public_id, unique=True)
        db[name].create_index("firebase_uid", unique=True, sparse=True)

    db["client"].create_index("current_plan.plan_type")

    db["partner"].create_index("locations.city")
    db["partner"].create_index("shoot_type")
    db["partner"].create_index([("ratings.average", DESCENDING)])
    db["partner"].create_index("verified")

    db["order"].create_index("order_id", unique=True)
    db["order"].create_index("client_id")
    db["order"].create_index("partner_id")
    db["order"].create_index("status")
    db["order"].create_index("event_date_time")
    db["order"].create_index([("booking_date_time", DESCENDING)])

    db["book"].create_index("isbn")


def database_status(db: Database) -> Dict[str, Any]:
    try:
        collections = db.list_collection_names()
    except PyMongoError as e:
        logger.warning("Database check failed: %s", e)
        return {"status": "disconnected", "name": db.name, "error": str(e)[:80]}
    return {"status": "connected", "name": db.name, "collections": sorted(collections)[:20]}
