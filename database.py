"""
Record store for MedFlow

Each record kind lives in its own MongoDB collection: "patients",
"prescriptions" and "labtests". Records are keyed by a generated string id
kept in ``_id`` and exposed to callers as ``id``.
"""
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "medflow")

COLLECTIONS = ("patients", "prescriptions", "labtests")

client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[DATABASE_NAME]


class UnknownCollection(KeyError):
    pass


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id"):
        d["id"] = str(d.pop("_id"))
    # Convert datetimes to isoformat
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


class RecordStore:
    """Generic create/read/update access to the named collections."""

    def __init__(self, database: Database):
        self.db = database

    def _collection(self, name: str):
        if name not in COLLECTIONS:
            raise UnknownCollection(name)
        return self.db[name]

    def get_all(self, collection: str) -> Dict[str, List[Dict[str, Any]]]:
        items = [serialize_doc(d) for d in self._collection(collection).find().sort("created_at", -1)]
        return {"items": items}

    def get_by_id(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        doc = self._collection(collection).find_one({"_id": record_id})
        return serialize_doc(doc) if doc else None

    def create(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(record)
        doc["_id"] = doc.pop("id", None) or str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        doc.update({"created_at": now, "updated_at": now})
        self._collection(collection).insert_one(doc)
        return serialize_doc(doc)

    def update(self, collection: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Set the given fields on the record named by ``partial["id"]``.

        Fields not present in ``partial`` are left untouched. Returns the
        updated record, or None when no record has that id.
        """
        fields = dict(partial)
        record_id = fields.pop("id")
        fields["updated_at"] = datetime.now(timezone.utc)
        doc = self._collection(collection).find_one_and_update(
            {"_id": record_id}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
        return serialize_doc(doc) if doc else None


def get_store() -> RecordStore:
    return RecordStore(db)
