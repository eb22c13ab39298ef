# assess_core/session.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
import copy, logging, random, threading, time

from .types import (
    Alert,
    AlertKind,
    AnswerKind,
    CandidateProfile,
    Phase,
    Question,
    ReportAttachment,
    ScoreReport,
)
from .answers import AnswerStore
from .integrity import IntegrityMonitor
from .notifier import Notifier, NullNotifier
from .persist import parse_snapshot
from .question_bank import load_bank
from .reporting import application_summary, build_report_document, report_filename
from .scoring import build_score_report
from . import config


log = logging.getLogger(__name__)


class SessionError(Exception):
    """Base class for rejected session operations."""


class PhaseError(SessionError):
    pass


class SessionClosed(SessionError):
    pass


class NoSkipCredits(SessionError):
    pass


class AnswerValidationError(SessionError):
    pass


class ProfileValidationError(SessionError):
    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__("Please fill all required fields: " + ", ".join(self.missing))


_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    n = int(n)
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def generate_session_id(now: Optional[float] = None, rng: Optional[random.Random] = None) -> str:
    ts_ms = int((time.time() if now is None else now) * 1000)
    rand = (rng or random).randrange(36 ** 8, 36 ** 9)
    return f"{config.SESSION_ID_PREFIX}-{_base36(ts_ms)}-{_base36(rand)}"


def format_elapsed(seconds: Optional[float]) -> str:
    if seconds is None:
        return "00:00:00"
    s = max(0, int(seconds))
    return f"{s // 3600:02d}:{(s % 3600) // 60:02d}:{s % 60:02d}"


def _utc_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class SessionState:
    phase: Phase = Phase.RULES
    current_question_index: int = 1
    skips_remaining: Optional[int] = config.SKIP_CREDITS
    started_at: float = 0.0
    assessment_started_at: Optional[float] = None
    is_submitting: bool = False
    is_saving: bool = False
    # highest index reached on the first pass
    frontier: int = 0
    # skipped questions already handed back during the skip-resolution pass
    offered: set[int] = field(default_factory=set)


@dataclass
class SubmissionResult:
    session_id: str
    score: ScoreReport
    document: str
    filename: str
    submitted_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "score": self.score.to_dict(),
            "filename": self.filename,
            "submitted_at": self.submitted_at,
        }


class AssessmentSession:
    """One candidate attempt: rules, profile, question pass, submission.

    The first pass visits questions 1..N in order. Once it is exhausted,
    skipped questions are handed back one at a time in the order they were
    skipped; each is offered at most once. When nothing is left the session
    moves to SUBMITTING, where `submit()` finalises it.
    """

    def __init__(
        self,
        bank: Optional[List[Question]] = None,
        notifier: Optional[Notifier] = None,
        skip_credits: Optional[int] = config.SKIP_CREDITS,
        clock: Callable[[], float] = time.time,
        session_id: Optional[str] = None,
        cfg: Optional[dict] = None,
    ):
        self.cfg = cfg or {}
        self.bank: List[Question] = list(bank) if bank is not None else load_bank()
        if not self.bank:
            raise ValueError("question bank is empty")
        self._by_index = {q.index: q for q in self.bank}
        self.notifier: Notifier = notifier or NullNotifier()
        self._clock = clock
        self.session_id = session_id or generate_session_id(clock())
        self.state = SessionState(skips_remaining=skip_credits, started_at=clock())
        self.answers = AnswerStore()
        self.monitor = IntegrityMonitor(escalate=self._escalate, clock=clock)
        self.profile: Optional[CandidateProfile] = None
        self.result: Optional[SubmissionResult] = None
        # guards the submit and autosave busy flags and snapshot copies
        self._guard = threading.Lock()

    # ---- properties ----
    @property
    def total_questions(self) -> int:
        return len(self.bank)

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def current_question(self) -> Optional[Question]:
        if self.state.phase != Phase.IN_PROGRESS:
            return None
        return self._by_index[self.state.current_question_index]

    @property
    def skips_remaining(self) -> Optional[int]:
        return self.state.skips_remaining

    @property
    def in_skip_resolution(self) -> bool:
        return self.state.frontier >= self.total_questions and bool(self.state.offered)

    def progress(self) -> float:
        ph = self.state.phase
        if ph == Phase.RULES:
            return config.PROGRESS_RULES
        if ph == Phase.PERSONAL_INFO:
            return config.PROGRESS_PERSONAL_INFO
        if ph == Phase.IN_PROGRESS:
            done = len(self.answers.completed) / self.total_questions
            return config.PROGRESS_ASSESSMENT_BASE + done * config.PROGRESS_ASSESSMENT_SPAN
        if ph == Phase.SUBMITTING:
            return config.PROGRESS_SUBMITTING
        return config.PROGRESS_SUBMITTED

    def elapsed(self) -> str:
        return format_elapsed(self._clock() - self.state.started_at)

    def assessment_elapsed(self) -> str:
        if self.state.assessment_started_at is None:
            return format_elapsed(None)
        return format_elapsed(self._clock() - self.state.assessment_started_at)

    # ---- guards ----
    def _require(self, *phases: Phase) -> None:
        if self.state.phase == Phase.SUBMITTED:
            raise SessionClosed("application already submitted")
        if self.state.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise PhaseError(f"not allowed in phase {self.state.phase.value} (expected {allowed})")

    def _question(self, index: int) -> Question:
        q = self._by_index.get(int(index))
        if q is None:
            raise ValueError(f"unknown question {index}")
        return q

    # ---- transitions ----
    def accept_rules(self) -> None:
        self._require(Phase.RULES)
        self.state.phase = Phase.PERSONAL_INFO
        log.debug("session=%s rules accepted", self.session_id)

    def start_assessment(self, profile: CandidateProfile) -> Question:
        self._require(Phase.PERSONAL_INFO)
        data = profile.to_dict()
        missing = [f for f in config.REQUIRED_PROFILE_FIELDS if not str(data.get(f) or "").strip()]
        if missing:
            raise ProfileValidationError(missing)
        self.profile = profile
        self.state.phase = Phase.IN_PROGRESS
        self.state.assessment_started_at = self._clock()
        self.state.current_question_index = 1
        self.state.frontier = 1
        log.info("session=%s assessment started candidate=%s", self.session_id, profile.username)
        return self._by_index[1]

    def save_answer(self, index: int, kind: AnswerKind | str, value: Optional[str]) -> None:
        self._require(Phase.IN_PROGRESS, Phase.SUBMITTING)
        q = self._question(index)
        kind = AnswerKind(kind)
        with self._guard:
            ans = self.answers.save(q.index, kind, value)
            if ans.has_content():
                self.answers.mark_completed(q.index)
            else:
                self.answers.unmark_completed(q.index)
                self.answers.unskip(q.index)
        if kind == AnswerKind.TEXT and value:
            self.monitor.inspect_text(value, q.index)

    def _validate_current(self) -> None:
        q = self._by_index[self.state.current_question_index]
        if q.requires_text and len(self.answers.value(q.index, AnswerKind.TEXT).strip()) < config.MIN_TEXT_CHARS:
            raise AnswerValidationError(
                f"Question {q.index}: text answer needs at least {config.MIN_TEXT_CHARS} characters"
            )
        if q.requires_code and len(self.answers.value(q.index, AnswerKind.CODE).strip()) < config.MIN_CODE_CHARS:
            raise AnswerValidationError(
                f"Question {q.index}: code answer needs at least {config.MIN_CODE_CHARS} characters"
            )

    def _next_skipped(self) -> Optional[int]:
        for idx in self.answers.skipped:
            if idx not in self.state.offered:
                return idx
        return None

    def _move_on(self) -> Optional[Question]:
        st = self.state
        if st.frontier < self.total_questions:
            st.frontier += 1
            st.current_question_index = st.frontier
            return self._by_index[st.frontier]
        nxt = self._next_skipped()
        if nxt is not None:
            st.offered.add(nxt)
            st.current_question_index = nxt
            log.debug("session=%s revisiting skipped question %d", self.session_id, nxt)
            return self._by_index[nxt]
        st.phase = Phase.SUBMITTING
        log.info("session=%s all questions visited; ready to submit", self.session_id)
        return None

    def advance(self) -> Optional[Question]:
        """Validate the current question and move on; None once ready to submit."""
        self._require(Phase.IN_PROGRESS)
        self._validate_current()
        self.answers.mark_completed(self.state.current_question_index)
        return self._move_on()

    def skip(self) -> Optional[Question]:
        self._require(Phase.IN_PROGRESS)
        st = self.state
        if st.skips_remaining is not None:
            if st.skips_remaining <= 0:
                raise NoSkipCredits("No skips remaining")
            st.skips_remaining -= 1
        idx = st.current_question_index
        self.answers.mark_skipped(idx)
        self.monitor.record_skip(idx)
        log.debug("session=%s skipped question %d remaining=%s", self.session_id, idx, st.skips_remaining)
        return self._move_on()

    # ---- notifications ----
    def _alert(self, kind: AlertKind, payload: Dict[str, Any]) -> Alert:
        return Alert(kind=kind, timestamp=_utc_iso(self._clock()), session_id=self.session_id, payload=payload)

    def _send(self, alert: Alert, attachment: Optional[ReportAttachment] = None) -> None:
        try:
            self.notifier.notify(alert, attachment)
        except Exception:
            log.warning("notifier raised for kind=%s session=%s", alert.kind.value,
                        self.session_id, exc_info=True)

    def _escalate(self, kind: AlertKind, payload: Dict[str, Any]) -> None:
        body = dict(payload)
        body.setdefault("candidate", self.profile.username if self.profile else None)
        self._send(self._alert(kind, body))

    def request_help(self) -> Alert:
        self._ensure_open()
        alert = self._alert(AlertKind.HELP_REQUEST, {
            "question": self.state.current_question_index,
            "time_elapsed": self.assessment_elapsed(),
            "candidate": self.profile.username if self.profile else None,
        })
        self._send(alert)
        return alert

    # ---- submission ----
    def score(self) -> ScoreReport:
        return build_score_report(
            self.answers.items(),
            self.bank,
            self.answers.status,
            thresholds=config.grade_thresholds(self.cfg),
            denominator=self.cfg.get("score_denominator"),
        )

    def submit(self) -> Optional[SubmissionResult]:
        """Finalise once; repeated calls return the stored result, re-entrant ones None."""
        with self._guard:
            if self.state.phase == Phase.SUBMITTED:
                return self.result
            self._require(Phase.SUBMITTING)
            if self.state.is_submitting:
                log.debug("session=%s submit already in flight", self.session_id)
                return None
            self.state.is_submitting = True
        try:
            report = self.score()
            submitted_at = _utc_iso(self._clock())
            profile = self.profile or CandidateProfile()
            document = build_report_document(
                session_id=self.session_id,
                profile=profile,
                score=report,
                bank=self.bank,
                answers=self.answers.items(),
                integrity=self.monitor.summary(),
                time_spent=self.assessment_elapsed(),
                submitted_at=submitted_at,
            )
            filename = report_filename(profile.username or profile.full_name, self.session_id)
            alert = self._alert(AlertKind.APPLICATION_SUBMITTED, {
                "candidate": profile.to_dict(),
                "score": report.final_score,
                "grade": report.grade.value,
                "answers": {i: a.to_dict() for i, a in self.answers.items().items()},
                "integrity": self.monitor.summary(),
            })
            self._send(alert, ReportAttachment(filename=filename, document=document))
            self.result = SubmissionResult(
                session_id=self.session_id,
                score=report,
                document=document,
                filename=filename,
                submitted_at=submitted_at,
            )
            self.state.phase = Phase.SUBMITTED
            log.info("session=%s submitted score=%d grade=%s", self.session_id,
                     report.final_score, report.grade.value)
            return self.result
        finally:
            self.state.is_submitting = False

    # ---- events forwarded to the monitor ----
    def _ensure_open(self) -> None:
        if self.state.phase == Phase.SUBMITTED:
            raise SessionClosed("application already submitted")

    def focus_changed(self, hidden: bool) -> bool:
        self._ensure_open()
        return self.monitor.inspect_focus_change(hidden)

    def keystrokes(self, intervals_ms: Sequence[float]) -> bool:
        self._ensure_open()
        return self.monitor.inspect_keystroke_timing(intervals_ms)

    def clipboard(self, action: str) -> None:
        self._ensure_open()
        self.monitor.record_clipboard(action)

    # ---- views ----
    def summary(self) -> Dict[str, str]:
        return application_summary(
            self.profile, len(self.answers.completed), self.total_questions, self.assessment_elapsed()
        )

    def view(self) -> Dict[str, Any]:
        q = self.current_question
        return {
            "session_id": self.session_id,
            "phase": self.state.phase.value,
            "progress": round(self.progress(), 2),
            "question": None if q is None else {
                "index": q.index,
                "text": q.text,
                "points": q.points,
                "requires_text": q.requires_text,
                "requires_code": q.requires_code,
                "text_answer": self.answers.value(q.index, AnswerKind.TEXT),
                "code_answer": self.answers.value(q.index, AnswerKind.CODE),
            },
            "total_questions": self.total_questions,
            "skips_remaining": self.state.skips_remaining,
            "skip_resolution": self.in_skip_resolution,
            "skipped": self.answers.skipped,
            "completed": sorted(self.answers.completed),
            "elapsed": self.elapsed(),
        }

    # ---- persistence ----
    def snapshot(self) -> Dict[str, Any]:
        with self._guard:
            snap = copy.deepcopy(self.answers.to_snapshot())
            snap["currentQuestionIndex"] = self.state.current_question_index
            snap["furthestQuestionIndex"] = self.state.frontier
            snap["skipsRemaining"] = self.state.skips_remaining
        snap["timestamp"] = _utc_iso(self._clock())
        return snap

    def autosave(self, save: Callable[[Dict[str, Any]], None]) -> bool:
        """Hand one snapshot to `save` unless a save or submission is already running."""
        st = self.state
        with self._guard:
            if st.phase != Phase.IN_PROGRESS or st.is_saving or st.is_submitting:
                return False
            st.is_saving = True
        try:
            save(self.snapshot())
        finally:
            st.is_saving = False
        return True

    def restore(self, raw: Any) -> bool:
        """Apply saved progress; malformed data is ignored and leaves the session untouched."""
        if self.state.phase != Phase.IN_PROGRESS:
            return False
        snap = parse_snapshot(raw, self.total_questions)
        if snap is None:
            log.debug("session=%s ignoring unusable snapshot", self.session_id)
            return False
        with self._guard:
            self.answers.load(snap.answers, snap.completed, snap.skipped)
            st = self.state
            st.current_question_index = snap.current_question_index
            st.skips_remaining = snap.skips_remaining
            # answers saved ahead of the cursor do not count as visited
            st.frontier = max(snap.furthest_question_index or 0, snap.current_question_index, *snap.skipped)
            st.offered = set()
            skipped = self.answers.skipped
            if st.frontier >= self.total_questions and snap.current_question_index in skipped:
                pos = skipped.index(snap.current_question_index)
                st.offered = set(skipped[: pos + 1])
        log.info("session=%s restored progress at question %d", self.session_id, st.current_question_index)
        return True
