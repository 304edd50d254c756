import logging
import os
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pymongo.errors import PyMongoError

import portals
from chatbot import ChatRegistry, get_chat_registry, respond
from database import RecordStore, get_store
from lifecycle import RecordKind, TransitionError
from preferences import THEME_COOKIE, resolve_theme, toggle_theme
from schemas import (
    ChatIn,
    ChatMessage,
    ChatReply,
    Conversation,
    DoctorPortal,
    LabTestIn,
    LabTestOut,
    LoginIn,
    PatientDetail,
    PatientIn,
    PatientOut,
    PatientPortal,
    PrescriptionIn,
    PrescriptionOut,
    RecordBoard,
    StatusUpdate,
    ThemePreference,
    Token,
)
from sessions import (
    AuthSession,
    InvalidCredentials,
    Role,
    SessionRequired,
    encode_session,
    login,
    require_session,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# App setup
app = FastAPI(title="MedFlow Hospital Workflow API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers
@app.exception_handler(SessionRequired)
async def session_required_handler(request: Request, exc: SessionRequired):
    return RedirectResponse(exc.role.login_path, status_code=status.HTTP_303_SEE_OTHER)


@app.exception_handler(InvalidCredentials)
async def invalid_credentials_handler(request: Request, exc: InvalidCredentials):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(TransitionError)
async def transition_error_handler(request: Request, exc: TransitionError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(portals.RecordNotFound)
async def record_not_found_handler(request: Request, exc: portals.RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": "Record not found"})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Record store call failed on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Record store unavailable"})


# Health endpoints
@app.get("/")
def read_root():
    return {"message": "MedFlow Hospital Workflow API running"}


@app.get("/test")
def test_database(store: RecordStore = Depends(get_store)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "❌ Not Set" if not os.getenv("DATABASE_URL") else "✅ Set",
        "database_name": "❌ Not Set" if not os.getenv("DATABASE_NAME") else "✅ Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        cols = store.db.list_collection_names()
        response.update({
            "database": "✅ Connected & Working",
            "connection_status": "Connected",
            "collections": cols[:10],
        })
    except PyMongoError as e:
        response["database"] = f"⚠️ {str(e)[:80]}"
    return response


# Session gate
@app.get("/{role}-login")
def login_page(role: Role):
    return {"role": role.value, "message": "Sign in to access your dashboard", "fields": ["email", "password"]}


@app.post("/{role}-login", response_model=Token)
def login_submit(role: Role, form: LoginIn, response: Response):
    session = login(role, form.email, form.password)
    token = encode_session(session)
    response.set_cookie(role.session_key, token, httponly=True, samesite="lax")
    return {
        "access_token": token,
        "token_type": "bearer",
        "session": session.to_dict(),
        "redirect": role.portal_path,
    }


@app.post("/{role}-logout")
def logout(role: Role, response: Response):
    response.delete_cookie(role.session_key)
    return {"ok": True, "redirect": "/"}


# Patient directory
@app.get("/patients", response_model=List[PatientOut])
def list_patients(q: Optional[str] = None, store: RecordStore = Depends(get_store)):
    return portals.search_patients(store, q)


@app.post("/patients", response_model=PatientOut)
def create_patient(body: PatientIn, store: RecordStore = Depends(get_store)):
    created = store.create("patients", body.model_dump(by_alias=True))
    logger.info("Patient %s added", created["id"])
    return created


@app.get("/patients/{patient_id}", response_model=PatientDetail)
def get_patient(patient_id: str, store: RecordStore = Depends(get_store)):
    doc = store.get_by_id("patients", patient_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Patient not found")
    return {"patient": doc, "timeline": portals.load_timeline(store, patient_id)}


# Doctor portal
@app.get("/doctor-portal", response_model=DoctorPortal)
def doctor_portal(
    session: AuthSession = Depends(require_session(Role.DOCTOR)),
    store: RecordStore = Depends(get_store),
):
    return {"session": session.to_dict(), "patients": portals.load_records(store, "patients")}


@app.post("/doctor-portal/prescriptions", response_model=PrescriptionOut)
def submit_prescription(
    body: PrescriptionIn,
    _: AuthSession = Depends(require_session(Role.DOCTOR)),
    store: RecordStore = Depends(get_store),
):
    return portals.create_prescription(store, body.model_dump(by_alias=True))


@app.post("/doctor-portal/labtests", response_model=LabTestOut)
def submit_labtest(
    body: LabTestIn,
    _: AuthSession = Depends(require_session(Role.DOCTOR)),
    store: RecordStore = Depends(get_store),
):
    return portals.create_labtest(store, body.model_dump(by_alias=True))


# Pharmacy portal
@app.get("/pharmacy-portal", response_model=RecordBoard)
def pharmacy_portal(
    session: AuthSession = Depends(require_session(Role.PHARMACY)),
    store: RecordStore = Depends(get_store),
):
    return {"session": session.to_dict(), "board": portals.load_board(store, RecordKind.PRESCRIPTION)}


@app.post("/pharmacy-portal/prescriptions/{prescription_id}/status", response_model=RecordBoard)
def update_prescription_status(
    prescription_id: str,
    body: StatusUpdate,
    session: AuthSession = Depends(require_session(Role.PHARMACY)),
    store: RecordStore = Depends(get_store),
):
    board = portals.apply_transition(
        store, RecordKind.PRESCRIPTION, prescription_id, body.status, body.result_details
    )
    return {"session": session.to_dict(), "board": board}


# Lab portal
@app.get("/lab-portal", response_model=RecordBoard)
def lab_portal(
    session: AuthSession = Depends(require_session(Role.LAB)),
    store: RecordStore = Depends(get_store),
):
    return {"session": session.to_dict(), "board": portals.load_board(store, RecordKind.LAB_TEST)}


@app.post("/lab-portal/labtests/{test_id}/status", response_model=RecordBoard)
def update_labtest_status(
    test_id: str,
    body: StatusUpdate,
    session: AuthSession = Depends(require_session(Role.LAB)),
    store: RecordStore = Depends(get_store),
):
    board = portals.apply_transition(store, RecordKind.LAB_TEST, test_id, body.status, body.result_details)
    return {"session": session.to_dict(), "board": board}


# Patient portal
@app.get("/patient-portal", response_model=PatientPortal)
def patient_portal(
    patient_id: Optional[str] = None,
    session: AuthSession = Depends(require_session(Role.PATIENT)),
    store: RecordStore = Depends(get_store),
):
    records = portals.load_timeline(store, patient_id) if patient_id else []
    return {
        "session": session.to_dict(),
        "email": session.identifier,
        "name": session.identifier.split("@")[0],
        "patient_id": patient_id,
        "records": records,
    }


# Chat assistant
@app.post("/chat", response_model=ChatReply)
def chat_reply(body: ChatIn):
    return {"reply": respond(body.text)}


@app.post("/chat/conversations", response_model=Conversation)
def open_conversation(registry: ChatRegistry = Depends(get_chat_registry)):
    return registry.open().to_dict()


@app.get("/chat/conversations/{conversation_id}", response_model=Conversation)
def get_conversation(conversation_id: str, registry: ChatRegistry = Depends(get_chat_registry)):
    log = registry.get(conversation_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return log.to_dict()


@app.delete("/chat/conversations/{conversation_id}")
def close_conversation(conversation_id: str, registry: ChatRegistry = Depends(get_chat_registry)):
    if not registry.close(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"ok": True}


@app.post(
    "/chat/conversations/{conversation_id}/messages",
    response_model=ChatMessage,
    status_code=status.HTTP_202_ACCEPTED,
)
def send_message(conversation_id: str, body: ChatIn, registry: ChatRegistry = Depends(get_chat_registry)):
    log = registry.get(conversation_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    try:
        return log.send(body.text)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# Preferences
@app.get("/preferences/theme", response_model=ThemePreference)
def get_theme(request: Request):
    return {"theme": resolve_theme(request.cookies.get(THEME_COOKIE))}


@app.put("/preferences/theme", response_model=ThemePreference)
def set_theme(body: ThemePreference, response: Response):
    response.set_cookie(THEME_COOKIE, body.theme)
    return {"theme": body.theme}


@app.post("/preferences/theme/toggle", response_model=ThemePreference)
def toggle_theme_preference(request: Request, response: Response):
    theme = toggle_theme(request.cookies.get(THEME_COOKIE))
    response.set_cookie(THEME_COOKIE, theme)
    return {"theme": theme}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
