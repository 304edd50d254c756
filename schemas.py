"""
Schemas for the MedFlow hospital workflow portal

Each record model maps to a MongoDB collection: Patient -> "patients",
Prescription -> "prescriptions", LabTest -> "labtests".
Field names are snake_case in Python and camelCase on the wire and in storage.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Literal


class MedFlowModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Records

class PatientIn(MedFlowModel):
    full_name: str = Field(..., min_length=1)
    date_of_birth: Optional[str] = Field(None, description="YYYY-MM-DD")
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    medical_history_summary: Optional[str] = None
    allergies: Optional[str] = None
    current_status: str = Field("Active")


class PatientOut(MedFlowModel):
    id: str
    full_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    medical_history_summary: Optional[str] = None
    allergies: Optional[str] = None
    current_status: Optional[str] = None


class PrescriptionIn(MedFlowModel):
    patient_id: str = Field(..., min_length=1, description="Patient id, not checked against patients")
    medication_name: str = Field(..., min_length=1)
    dosage: str = ""
    instructions: str = ""
    doctor_name: str = Field(..., min_length=1)


class PrescriptionOut(MedFlowModel):
    id: str
    patient_id: Optional[str] = None
    medication_name: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    doctor_name: Optional[str] = None
    status: Optional[str] = Field(None, description="Pending | In Progress | Completed | Ready")
    prescribed_date: Optional[str] = None


class LabTestIn(MedFlowModel):
    patient_id: str = Field(..., min_length=1, description="Patient id, not checked against patients")
    test_type: str = Field(..., min_length=1)
    diagnostic_details: str = ""
    requested_by: str = Field(..., min_length=1)


class LabTestOut(MedFlowModel):
    id: str
    patient_id: Optional[str] = None
    test_type: Optional[str] = None
    diagnostic_details: Optional[str] = None
    requested_by: Optional[str] = None
    status: Optional[str] = Field(None, description="Pending | In Progress | Processing | Completed")
    request_date: Optional[str] = None
    result_details: Optional[str] = None


class StatusUpdate(MedFlowModel):
    status: str
    result_details: Optional[str] = Field(None, description="Required when completing a lab test")


class Board(MedFlowModel):
    pending: List[Dict[str, Any]] = Field(default_factory=list)
    in_progress: List[Dict[str, Any]] = Field(default_factory=list)
    completed: List[Dict[str, Any]] = Field(default_factory=list)
    unrecognized: List[Dict[str, Any]] = Field(default_factory=list)


class TimelineEntry(MedFlowModel):
    kind: Literal["prescription", "labtest"]
    id: str
    date: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    status: Optional[str] = None
    actor: Optional[str] = None
    result: Optional[str] = None


class PatientDetail(MedFlowModel):
    patient: PatientOut
    timeline: List[TimelineEntry]


# Sessions

class LoginIn(MedFlowModel):
    # Left untyped so a malformed form still gets the one generic login error.
    email: Any = None
    password: Any = None


class SessionOut(MedFlowModel):
    role: str
    identifier: str
    timestamp: int


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionOut
    redirect: str


class DoctorPortal(MedFlowModel):
    session: SessionOut
    patients: List[PatientOut]


class RecordBoard(MedFlowModel):
    session: SessionOut
    board: Board


class PatientPortal(MedFlowModel):
    session: SessionOut
    email: str
    name: str
    patient_id: Optional[str] = None
    records: List[TimelineEntry] = Field(default_factory=list)


# Chat

class ChatIn(MedFlowModel):
    text: str


class ChatMessage(MedFlowModel):
    id: str
    text: str
    sender: Literal["user", "bot"]
    timestamp: str


class ChatReply(MedFlowModel):
    reply: str


class Conversation(MedFlowModel):
    id: str
    typing: bool
    messages: List[ChatMessage]


# Preferences

class ThemePreference(MedFlowModel):
    theme: Literal["light", "dark"]
