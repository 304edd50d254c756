"""
Record views behind the doctor, pharmacy, lab and patient portals.

Store failures are logged and never propagate to the caller: views are
rebuilt from a full reload, and a reload that also fails gives an empty view.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from database import RecordStore
from lifecycle import PENDING, RecordKind, next_status, partition, transition_fields
from timeline import build_timeline

logger = logging.getLogger(__name__)

COLLECTION_FOR = {
    RecordKind.PRESCRIPTION: "prescriptions",
    RecordKind.LAB_TEST: "labtests",
}

UNKNOWN_PATIENT = "Unknown Patient"


class RecordNotFound(LookupError):
    pass


def load_records(store: RecordStore, collection: str) -> List[Dict[str, Any]]:
    try:
        return store.get_all(collection)["items"]
    except PyMongoError:
        logger.exception("Error loading %s", collection)
        return []


def search_patients(store: RecordStore, query: Optional[str] = None) -> List[Dict[str, Any]]:
    patients = load_records(store, "patients")
    if not query:
        return patients
    q = query.lower()
    return [
        p for p in patients
        if q in (p.get("fullName") or "").lower() or query in (p.get("contactNumber") or "")
    ]


def build_board(kind: RecordKind, records: List[Dict[str, Any]], patient_names: Dict[str, str]) -> Dict[str, List]:
    board = {}
    for bucket, items in partition(kind, records).items():
        board[bucket.value] = [
            {
                **item,
                "patientName": patient_names.get(item.get("patientId"), UNKNOWN_PATIENT),
                "nextStatus": next_status(kind, item.get("status")),
            }
            for item in items
        ]
    return board


def _patient_names(store: RecordStore) -> Dict[str, str]:
    return {p["id"]: p.get("fullName") or UNKNOWN_PATIENT for p in load_records(store, "patients")}


def load_board(store: RecordStore, kind: RecordKind) -> Dict[str, List]:
    records = load_records(store, COLLECTION_FOR[kind])
    return build_board(kind, records, _patient_names(store))


def apply_transition(
    store: RecordStore,
    kind: RecordKind,
    record_id: str,
    status: str,
    result_details: Optional[str] = None,
) -> Dict[str, List]:
    """Move a record to ``status`` and return the refreshed board.

    The change is applied to the loaded records before the store is written;
    if the write fails the board is reloaded from the store instead.
    """
    fields = transition_fields(kind, status, result_details)
    collection = COLLECTION_FOR[kind]
    records = load_records(store, collection)
    optimistic = [{**r, **fields} if r.get("id") == record_id else r for r in records]

    try:
        updated = store.update(collection, {"id": record_id, **fields})
    except PyMongoError:
        logger.exception("Error updating status of %s %s", kind.value, record_id)
        return load_board(store, kind)
    if updated is None:
        raise RecordNotFound(record_id)

    logger.info("%s %s moved to %r", kind.value, record_id, status)
    return build_board(kind, optimistic, _patient_names(store))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_prescription(store: RecordStore, form: Dict[str, Any]) -> Dict[str, Any]:
    record = dict(form, status=PENDING, prescribedDate=_now())
    created = store.create("prescriptions", record)
    logger.info("Prescription %s submitted for patient %s", created["id"], created.get("patientId"))
    return created


def create_labtest(store: RecordStore, form: Dict[str, Any]) -> Dict[str, Any]:
    record = dict(form, status=PENDING, requestDate=_now(), resultDetails="")
    created = store.create("labtests", record)
    logger.info("Lab test %s requested for patient %s", created["id"], created.get("patientId"))
    return created


def load_timeline(store: RecordStore, patient_id: str) -> List[Dict[str, Any]]:
    prescriptions = load_records(store, "prescriptions")
    labtests = load_records(store, "labtests")
    return build_timeline(patient_id, prescriptions, labtests)
