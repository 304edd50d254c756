"""Tests for the merged patient timeline."""

from datetime import datetime

from timeline import build_timeline


PRESCRIPTIONS = [
    {
        "id": "rx-1",
        "patientId": "p-1",
        "medicationName": "Amoxicillin",
        "dosage": "500mg",
        "instructions": "Twice daily",
        "doctorName": "Dr. Smith",
        "status": "Completed",
        "prescribedDate": "2026-02-10",
    },
    {"id": "rx-2", "patientId": "p-2", "medicationName": "Ibuprofen", "prescribedDate": "2026-03-01"},
]

LABTESTS = [
    {
        "id": "lab-1",
        "patientId": "p-1",
        "testType": "Blood Work",
        "diagnosticDetails": "CBC",
        "requestedBy": "Dr. Johnson",
        "status": "Completed",
        "requestDate": "2026-02-08",
        "resultDetails": "WBC normal",
    },
]


def test_newest_entry_first():
    entries = build_timeline("p-1", PRESCRIPTIONS, LABTESTS)

    assert [e["id"] for e in entries] == ["rx-1", "lab-1"]


def test_entries_are_filtered_by_patient():
    entries = build_timeline("p-2", PRESCRIPTIONS, LABTESTS)

    assert [e["id"] for e in entries] == ["rx-2"]


def test_common_shape():
    rx, lab = build_timeline("p-1", PRESCRIPTIONS, LABTESTS)

    assert rx == {
        "kind": "prescription",
        "id": "rx-1",
        "date": "2026-02-10",
        "title": "Amoxicillin",
        "subtitle": "500mg - Twice daily",
        "status": "Completed",
        "actor": "Dr. Smith",
    }
    assert lab["kind"] == "labtest"
    assert lab["actor"] == "Dr. Johnson"
    assert lab["result"] == "WBC normal"


def test_missing_and_bad_dates_sort_last():
    prescriptions = [
        {"id": "no-date", "patientId": "p"},
        {"id": "bad-date", "patientId": "p", "prescribedDate": "soon"},
        {"id": "dated", "patientId": "p", "prescribedDate": "1999-12-31T23:00:00Z"},
    ]
    labtests = [{"id": "as-datetime", "patientId": "p", "requestDate": datetime(2001, 1, 1)}]

    entries = build_timeline("p", prescriptions, labtests)

    assert [e["id"] for e in entries[:2]] == ["as-datetime", "dated"]
    assert {e["id"] for e in entries[2:]} == {"no-date", "bad-date"}


def test_unknown_patient_gives_empty_timeline():
    assert build_timeline("nobody", PRESCRIPTIONS, LABTESTS) == []
