from __future__ import annotations
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
import os, threading, typing as t
from contextlib import contextmanager

# ---- Engine imports ----
from assess_core.session import (
    AnswerValidationError,
    AssessmentSession,
    ProfileValidationError,
    SessionError,
)
from assess_core.types import AnswerKind, CandidateProfile
from assess_core.config import load_config, skip_credits
from assess_core.notifier import notifier_from_config
from assess_core.persist import AutoSaver
from .storage import (
    clear_progress,
    list_reports_for_candidate,
    load_report,
    load_report_document,
    progress_store,
    save_report,
    utcnow_iso,
)

CFG = load_config()
NOTIFIER = notifier_from_config(CFG)

SESS: dict[str, AssessmentSession] = {}
AUTOSAVE: dict[str, AutoSaver] = {}
LOCKS: dict[str, threading.Lock] = {}

app = FastAPI(title="Candidate Assessment API")


@app.get("/")
def root():
    return {"status": "ok", "service": "candidate-assessment-api"}


ALLOWED_ORIGINS = [o for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.exception_handler(SessionError)
def _session_error(request: Request, exc: SessionError):
    if isinstance(exc, ProfileValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "missing": exc.missing})
    code = 422 if isinstance(exc, AnswerValidationError) else 409
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})


# ---- Schemas ----
class ProfileReq(BaseModel):
    full_name: str = ""
    username: str = ""
    discord_id: str = ""
    age: str = ""
    nationality: str = ""
    timezone: str = ""
    availability: str = ""
    experience: str = ""
    motivation: str = ""
    portfolio: str = ""


class AnswerReq(BaseModel):
    question: int
    kind: AnswerKind
    value: str | None = None


class VisibilityReq(BaseModel):
    hidden: bool


class KeystrokeReq(BaseModel):
    intervals_ms: list[float]


class ClipboardReq(BaseModel):
    action: t.Literal["copy", "paste"]


# ---- Helpers ----
@contextmanager
def _session(sid: str) -> t.Iterator[AssessmentSession]:
    """Hold the session's lock for the whole request; requests on one session run one at a time."""
    sess = SESS.get(sid)
    if not sess:
        raise HTTPException(404, "session not found")
    with LOCKS[sid]:
        saver = AUTOSAVE.get(sid)
        if saver is not None:
            saver.tick()
        yield sess


# ---- Session lifecycle ----
@app.post("/session/start")
def start():
    sess = AssessmentSession(notifier=NOTIFIER, skip_credits=skip_credits(CFG), cfg=CFG)
    LOCKS[sess.session_id] = threading.Lock()
    SESS[sess.session_id] = sess
    AUTOSAVE[sess.session_id] = AutoSaver(sess, progress_store(sess.session_id))
    return sess.view()


@app.get("/session/{sid}")
def state(sid: str):
    with _session(sid) as sess:
        return sess.view()


@app.post("/session/{sid}/rules/accept")
def accept_rules(sid: str):
    with _session(sid) as sess:
        sess.accept_rules()
        return sess.view()


@app.post("/session/{sid}/profile")
def submit_profile(sid: str, req: ProfileReq):
    with _session(sid) as sess:
        sess.start_assessment(CandidateProfile(**req.model_dump()))
        return sess.view()


@app.post("/session/{sid}/answer")
def answer(sid: str, req: AnswerReq):
    with _session(sid) as sess:
        sess.save_answer(req.question, req.kind, req.value)
        return {"ok": True, "progress": round(sess.progress(), 2)}


@app.post("/session/{sid}/next")
def next_question(sid: str):
    with _session(sid) as sess:
        sess.advance()
        return sess.view()


@app.post("/session/{sid}/skip")
def skip(sid: str):
    with _session(sid) as sess:
        sess.skip()
        return sess.view()


@app.post("/session/{sid}/help")
def help_request(sid: str):
    with _session(sid) as sess:
        sess.request_help()
    return {"ok": True, "message": "Admin has been notified. Please wait for assistance."}


@app.get("/session/{sid}/summary")
def summary(sid: str):
    with _session(sid) as sess:
        return sess.summary()


# ---- Integrity events ----
@app.post("/session/{sid}/events/visibility")
def visibility(sid: str, req: VisibilityReq):
    with _session(sid) as sess:
        escalated = sess.focus_changed(req.hidden)
    return {"ok": True, "escalated": escalated}


@app.post("/session/{sid}/events/keystrokes")
def keystrokes(sid: str, req: KeystrokeReq):
    with _session(sid) as sess:
        flagged = sess.keystrokes(req.intervals_ms)
    return {"ok": True, "flagged": flagged}


@app.post("/session/{sid}/events/clipboard")
def clipboard(sid: str, req: ClipboardReq):
    with _session(sid) as sess:
        sess.clipboard(req.action)
    return {"ok": True}


# ---- Progress ----
@app.post("/session/{sid}/progress/save")
def save_progress(sid: str):
    with _session(sid) as sess:
        saved = sess.autosave(progress_store(sid).save)
    return {"ok": saved, "message": "Progress saved successfully!" if saved else "Nothing to save"}


@app.post("/session/{sid}/progress/restore")
def restore_progress(sid: str):
    with _session(sid) as sess:
        restored = sess.restore(progress_store(sid).load())
        return {"restored": restored, **sess.view()}


# ---- Submission ----
@app.post("/session/{sid}/submit")
def submit(sid: str):
    with _session(sid) as sess:
        result = sess.submit()
        if result is None:
            raise HTTPException(409, "submission already in progress")
        if load_report(sid) is None:
            payload = result.to_dict()
            profile = sess.profile or CandidateProfile()
            save_report(
                sid,
                {**payload, "candidate": profile.to_dict(), "integrity": sess.monitor.summary()},
                result.document,
                {
                    "username": profile.username,
                    "submittedAt": result.submitted_at or utcnow_iso(),
                    "score": result.score.final_score,
                    "grade": result.score.grade.value,
                },
            )
            clear_progress(sid)
            AUTOSAVE.pop(sid, None)
        return result.to_dict()


@app.get("/session/{sid}/report")
def report(sid: str):
    stored = load_report(sid)
    if not stored:
        raise HTTPException(404, "report not found")
    return stored


@app.get("/session/{sid}/report/text")
def report_text(sid: str):
    doc = load_report_document(sid)
    if doc is None:
        raise HTTPException(404, "report not found")
    filename = (load_report(sid) or {}).get("filename") or f"{sid}.txt"
    return PlainTextResponse(doc, headers={"Content-Disposition": f"attachment; filename=\"{filename}\""})


@app.get("/candidates/{username}/reports")
def candidate_reports(username: str):
    return {"reports": list_reports_for_candidate(username)}
