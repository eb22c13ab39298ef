# assess_core/reporting.py
from __future__ import annotations
import re
from typing import Dict, List, Mapping, Optional, Sequence

from .types import Answer, CandidateProfile, Question, QuestionStatus, ScoreReport

_RULE = "=" * 60
_THIN = "-" * 60
_NOT_PROVIDED = "Not provided"

_PROFILE_LABELS = (
    ("full_name", "Full Name"),
    ("username", "Username"),
    ("discord_id", "Discord ID"),
    ("age", "Age"),
    ("nationality", "Nationality"),
    ("timezone", "Timezone"),
    ("availability", "Availability"),
    ("experience", "Experience"),
    ("portfolio", "Portfolio"),
)


def report_filename(candidate: str, session_id: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", (candidate or "").strip()).strip("._") or "candidate"
    return f"{safe}_{session_id}.txt"


def _answer_block(q: Question, ans: Optional[Answer], status: QuestionStatus, awarded: float) -> List[str]:
    text = (ans.text if ans else None) or ""
    code = (ans.code if ans else None) or ""
    lines = [
        f"Question {q.index} ({q.points} points)",
        q.text,
        "",
        "Text answer:",
        text.strip() or _NOT_PROVIDED,
    ]
    if q.requires_code:
        lines += ["", "Code answer:", code.rstrip() or _NOT_PROVIDED]
    lines += ["", f"Status: {status.value}", f"Awarded: {awarded:.2f}/{q.points}", _THIN]
    return lines


def build_report_document(
    *,
    session_id: str,
    profile: CandidateProfile,
    score: ScoreReport,
    bank: Sequence[Question],
    answers: Mapping[int, Answer],
    integrity: Mapping[str, int],
    time_spent: str,
    submitted_at: str,
) -> str:
    """Plain-text application report.

    Section order is fixed: header and candidate profile, motivation, score
    summary, one block per question, integrity footer.
    """
    awarded = {row.index: row for row in score.breakdown}
    out: List[str] = [
        _RULE,
        "CANDIDATE ASSESSMENT REPORT",
        _RULE,
        f"Session ID: {session_id}",
        f"Submitted: {submitted_at}",
        f"Time Spent: {time_spent}",
        "",
        "CANDIDATE PROFILE",
        _THIN,
    ]
    prof = profile.to_dict()
    for key, label in _PROFILE_LABELS:
        out.append(f"{label}: {prof.get(key) or _NOT_PROVIDED}")
    out += ["", "MOTIVATION", _THIN, profile.motivation, ""]

    out += [
        "SCORE SUMMARY",
        _THIN,
        f"Final Score: {score.final_score}/100",
        f"Grade: {score.grade.value}",
        f"Questions Attempted: {score.attempted}/{len(bank)}",
        f"Points: {score.earned_points:.2f}/{score.possible_points}",
        "",
        "ANSWERS",
        _THIN,
    ]
    for q in bank:
        row = awarded.get(q.index)
        status = row.status if row else QuestionStatus.NOT_ATTEMPTED
        out += _answer_block(q, answers.get(q.index), status, row.awarded if row else 0.0)

    out += [
        "",
        "SESSION INTEGRITY",
        _THIN,
        f"Suspicious Activities: {integrity.get('suspicious_activities', 0)}",
        f"AI Flags: {integrity.get('ai_flags', 0)}",
        f"Tab Switches: {integrity.get('tab_switches', 0)}",
        _RULE,
    ]
    return "\n".join(out) + "\n"


def application_summary(
    profile: Optional[CandidateProfile],
    completed: int,
    total: int,
    time_spent: str,
) -> Dict[str, str]:
    prof = profile or CandidateProfile()
    return {
        "name": prof.full_name,
        "username": prof.username,
        "questions_completed": f"{completed}/{total}",
        "time_spent": time_spent,
    }
