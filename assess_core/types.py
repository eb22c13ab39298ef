from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class Phase(str, Enum):
    RULES = "rules"
    PERSONAL_INFO = "personal_info"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class AnswerKind(str, Enum):
    TEXT = "text"
    CODE = "code"


class QuestionStatus(str, Enum):
    NOT_ATTEMPTED = "not attempted"
    SKIPPED = "skipped"
    COMPLETED = "completed"


class Grade(str, Enum):
    NOT_QUALIFIED = "NOT QUALIFIED"
    TRAINEE = "TRAINEE DEVELOPER"
    JUNIOR = "JUNIOR DEVELOPER"
    REGULAR = "REGULAR DEVELOPER"
    SENIOR = "SENIOR DEVELOPER"


class SuspicionKind(str, Enum):
    AI_CONTENT_DETECTED = "AI_CONTENT_DETECTED"
    TAB_SWITCH = "TAB_SWITCH"
    UNNATURAL_TYPING_PATTERN = "UNNATURAL_TYPING_PATTERN"
    COPY_ACTION = "COPY_ACTION"
    PASTE_ACTION = "PASTE_ACTION"
    QUESTION_SKIPPED = "QUESTION_SKIPPED"


class AlertKind(str, Enum):
    HELP_REQUEST = "HELP_REQUEST"
    APPLICATION_SUBMITTED = "APPLICATION_SUBMITTED"
    AI_CONTENT_DETECTED = "AI_CONTENT_DETECTED"
    EXCESSIVE_TAB_SWITCHING = "EXCESSIVE_TAB_SWITCHING"


@dataclass(frozen=True)
class Question:
    index: int; text: str
    requires_text: bool = True
    requires_code: bool = False
    points: int = 1


@dataclass
class Answer:
    text: Optional[str] = None
    code: Optional[str] = None

    def get(self, kind: AnswerKind) -> Optional[str]:
        return self.text if kind == AnswerKind.TEXT else self.code

    def has_content(self) -> bool:
        return bool((self.text or "").strip() or (self.code or "").strip())

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"text": self.text, "code": self.code}


@dataclass
class CandidateProfile:
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

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class SuspicionRecord:
    kind: SuspicionKind
    timestamp: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Alert:
    kind: AlertKind
    timestamp: str
    session_id: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "payload": dict(self.payload),
        }


@dataclass(frozen=True)
class ReportAttachment:
    filename: str
    document: str


@dataclass
class QuestionScore:
    index: int
    points: int
    awarded: float
    text_score: float
    code_score: float
    status: QuestionStatus


@dataclass
class ScoreReport:
    final_score: int
    grade: Grade
    attempted: int
    earned_points: float
    possible_points: int
    breakdown: List[QuestionScore] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "final_score": self.final_score,
            "grade": self.grade.value,
            "attempted": self.attempted,
            "earned_points": round(self.earned_points, 3),
            "possible_points": self.possible_points,
            "breakdown": [
                {
                    "index": q.index,
                    "points": q.points,
                    "awarded": round(q.awarded, 3),
                    "text_score": round(q.text_score, 3),
                    "code_score": round(q.code_score, 3),
                    "status": q.status.value,
                }
                for q in self.breakdown
            ],
        }
