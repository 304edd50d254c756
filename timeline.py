from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List


def _timestamp(value: Any) -> float:
    """Sort key for a record date; missing or unreadable dates count as epoch 0."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return 0.0
    else:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def prescription_entry(p: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "kind": "prescription",
        "id": p.get("id"),
        "date": p.get("prescribedDate"),
        "title": p.get("medicationName"),
        "subtitle": f"{p.get('dosage') or ''} - {p.get('instructions') or ''}",
        "status": p.get("status"),
        "actor": p.get("doctorName"),
    }


def labtest_entry(t: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "kind": "labtest",
        "id": t.get("id"),
        "date": t.get("requestDate"),
        "title": t.get("testType"),
        "subtitle": t.get("diagnosticDetails"),
        "status": t.get("status"),
        "actor": t.get("requestedBy"),
        "result": t.get("resultDetails"),
    }


def build_timeline(
    patient_id: str,
    prescriptions: Iterable[Dict[str, Any]],
    labtests: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    entries = [prescription_entry(p) for p in prescriptions if p.get("patientId") == patient_id]
    entries += [labtest_entry(t) for t in labtests if t.get("patientId") == patient_id]
    entries.sort(key=lambda e: _timestamp(e["date"]), reverse=True)
    return entries
