from __future__ import annotations

from typing import List, Optional

import pytest

from assess_core.session import AssessmentSession
from assess_core.types import Alert, AlertKind, CandidateProfile, Question, ReportAttachment


def build_question_bank(
    n: int = 5,
    *,
    points: int = 5,
    code_every: int = 2,
) -> list[Question]:
    """Create a deterministic bank; every `code_every`-th question also wants code."""

    return [
        Question(
            index=i,
            text=f"Synthetic question {i}",
            requires_text=True,
            requires_code=(code_every > 0 and i % code_every == 0),
            points=points,
        )
        for i in range(1, n + 1)
    ]


PROFILE = CandidateProfile(
    full_name="Test Candidate",
    username="tester",
    discord_id="tester#1234",
    age="22",
    nationality="NL",
    timezone="UTC+1",
    availability="Evenings",
    experience="Two years of Lua scripting",
    motivation="I enjoy building tools\nand want to join the team.",
    portfolio="https://example.invalid/tester",
)

GOOD_TEXT = "A metatable hook wraps __namecall so remote calls can be inspected first."
GOOD_CODE = "local mt = getrawmetatable(game)"


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: List[tuple[Alert, Optional[ReportAttachment]]] = []

    def notify(self, alert: Alert, attachment: Optional[ReportAttachment] = None) -> None:
        self.calls.append((alert, attachment))

    def kinds(self) -> list[AlertKind]:
        return [a.kind for a, _ in self.calls]


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def answer_current(session: AssessmentSession) -> None:
    q = session.current_question
    session.save_answer(q.index, "text", GOOD_TEXT)
    if q.requires_code:
        session.save_answer(q.index, "code", GOOD_CODE)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(notifier, clock):
    def _make(n: int = 5, skip_credits: Optional[int] = 2, **kw) -> AssessmentSession:
        bank = kw.pop("bank", None) or build_question_bank(n)
        return AssessmentSession(bank=bank, notifier=notifier, skip_credits=skip_credits, clock=clock, **kw)

    return _make


@pytest.fixture
def started(make_session):
    def _start(n: int = 5, skip_credits: Optional[int] = 2, **kw) -> AssessmentSession:
        sess = make_session(n, skip_credits, **kw)
        sess.accept_rules()
        sess.start_assessment(PROFILE)
        return sess

    return _start
