"""
Status lifecycle shared by the pharmacy, lab and patient views.

Prescriptions move Pending -> In Progress -> Completed, with "Ready" accepted
as another spelling of completed. Lab tests move Pending -> In Progress ->
Completed, with "Processing" accepted as another spelling of in progress, and
only complete once result details are supplied. Status strings are stored
as given and compared case-insensitively.
"""
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class RecordKind(str, Enum):
    PRESCRIPTION = "prescription"
    LAB_TEST = "labtest"


class StatusBucket(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    UNRECOGNIZED = "unrecognized"


PENDING = "Pending"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"

_VOCABULARY = {
    RecordKind.PRESCRIPTION: {
        "pending": StatusBucket.PENDING,
        "in progress": StatusBucket.IN_PROGRESS,
        "completed": StatusBucket.COMPLETED,
        "ready": StatusBucket.COMPLETED,
    },
    RecordKind.LAB_TEST: {
        "pending": StatusBucket.PENDING,
        "in progress": StatusBucket.IN_PROGRESS,
        "processing": StatusBucket.IN_PROGRESS,
        "completed": StatusBucket.COMPLETED,
    },
}

# Forward action a portal offers for a record in each bucket.
_NEXT_STATUS = {
    StatusBucket.PENDING: IN_PROGRESS,
    StatusBucket.IN_PROGRESS: COMPLETED,
}


class TransitionError(ValueError):
    pass


def classify(kind: RecordKind, status: Optional[str]) -> StatusBucket:
    if not isinstance(status, str):
        return StatusBucket.UNRECOGNIZED
    return _VOCABULARY[kind].get(status.lower(), StatusBucket.UNRECOGNIZED)


def partition(kind: RecordKind, records: Iterable[Dict[str, Any]]) -> Dict[StatusBucket, List[Dict[str, Any]]]:
    buckets: Dict[StatusBucket, List[Dict[str, Any]]] = {bucket: [] for bucket in StatusBucket}
    for record in records:
        buckets[classify(kind, record.get("status"))].append(record)
    return buckets


def next_status(kind: RecordKind, status: Optional[str]) -> Optional[str]:
    return _NEXT_STATUS.get(classify(kind, status))


def transition_fields(kind: RecordKind, target: str, result_details: Optional[str] = None) -> Dict[str, Any]:
    """Validate a status change and return the fields it writes.

    Only the target vocabulary is checked; the record's current status is
    not, so the last writer wins.
    """
    bucket = classify(kind, target)
    if bucket is StatusBucket.UNRECOGNIZED:
        raise TransitionError(f"Unknown {kind.value} status: {target!r}")

    fields: Dict[str, Any] = {"status": target}
    if kind is RecordKind.PRESCRIPTION:
        if result_details is not None:
            raise TransitionError("Prescriptions do not carry result details")
        return fields

    if bucket is not StatusBucket.COMPLETED:
        if result_details is not None:
            raise TransitionError("Result details are only recorded when a lab test is completed")
        return fields

    if not (result_details or "").strip():
        raise TransitionError("Result details are required to complete a lab test")
    fields["resultDetails"] = result_details
    return fields
