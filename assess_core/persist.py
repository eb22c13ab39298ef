"""Progress snapshots: codec, a one-key JSON store and a cooperative autosaver.

Snapshot layout (camelCase, as the browser client stores it)::

    {"currentQuestionIndex": 3,
     "furthestQuestionIndex": 3,
     "answers": {"1": {"text": "...", "code": null}},
     "skipsRemaining": 1,
     "skippedQuestions": [2],
     "completedQuestions": [1],
     "timestamp": "2024-01-01T00:00:00+00:00"}

Loading is best-effort everywhere: anything missing or malformed reads as
"no saved progress".
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import config
from .types import Answer

log = logging.getLogger(__name__)


@dataclass
class ParsedSnapshot:
    current_question_index: int
    answers: Dict[int, Answer]
    skips_remaining: Optional[int]
    skipped: List[int]
    completed: List[int]
    timestamp: str
    # absent in snapshots written by older clients
    furthest_question_index: Optional[int] = None


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    if not isinstance(v, str):
        raise TypeError("answer fields must be strings")
    return v


def parse_snapshot(raw: Any, total_questions: int) -> Optional[ParsedSnapshot]:
    if not isinstance(raw, dict):
        return None
    try:
        current = int(raw["currentQuestionIndex"])
        furthest_raw = raw.get("furthestQuestionIndex")
        furthest = None if furthest_raw is None else int(furthest_raw)
        answers_raw = raw.get("answers") or {}
        if not isinstance(answers_raw, dict):
            return None
        answers: Dict[int, Answer] = {}
        for k, v in answers_raw.items():
            idx = int(k)
            if not isinstance(v, dict) or not 1 <= idx <= total_questions:
                return None
            answers[idx] = Answer(text=_opt_str(v.get("text")), code=_opt_str(v.get("code")))
        skips = raw.get("skipsRemaining")
        skips_remaining = None if skips is None else max(0, int(skips))
        skipped = [int(i) for i in raw.get("skippedQuestions") or []]
        completed = [int(i) for i in raw.get("completedQuestions") or []]
    except (KeyError, TypeError, ValueError):
        return None
    if not all(1 <= i <= total_questions for i in [current, *skipped, *completed]):
        return None
    if furthest is not None and not current <= furthest <= total_questions:
        return None
    return ParsedSnapshot(
        current_question_index=current,
        answers=answers,
        skips_remaining=skips_remaining,
        skipped=list(dict.fromkeys(skipped)),
        completed=completed,
        timestamp=str(raw.get("timestamp") or ""),
        furthest_question_index=furthest,
    )


class ProgressStore:
    """JSON file holding one snapshot under `config.PROGRESS_KEY`."""

    def __init__(self, path: Path, key: str = config.PROGRESS_KEY):
        self.path = Path(path)
        self.key = key

    def save(self, snapshot: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps({self.key: snapshot}, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.debug("progress file unreadable path=%s", self.path)
            return None
        snap = data.get(self.key) if isinstance(data, dict) else None
        return snap if isinstance(snap, dict) else None

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class AutoSaver:
    """Interval-gated saves driven by `tick()` from the event loop."""

    def __init__(
        self,
        session: Any,
        store: ProgressStore,
        interval_sec: float = config.AUTOSAVE_INTERVAL_SEC,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.store = store
        self.interval_sec = float(interval_sec)
        self._clock = clock
        self._last: Optional[float] = None

    def tick(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self.interval_sec:
            return False
        saved = self.session.autosave(self.store.save)
        if saved:
            self._last = now
        return saved
