"""Heuristic integrity signals for one assessment attempt.

The monitor only observes: it never drives navigation. Records are appended to
an in-memory log and a subset of them are escalated through the notifier.
Every threshold lives in `assess_core.config`; these are advisory heuristics,
not proctoring guarantees.
"""
from __future__ import annotations

import logging
import time
from collections import deque
from datetime import datetime, timezone
from statistics import mean, pvariance
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

from . import config
from .heuristics import ai_phrase_match
from .types import AlertKind, SuspicionKind, SuspicionRecord

log = logging.getLogger(__name__)

# (kind, payload) -> None; the session binds session id and timestamps.
Escalate = Callable[[AlertKind, Dict[str, Any]], None]


def _utc_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class IntegrityMonitor:
    def __init__(
        self,
        escalate: Optional[Escalate] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._escalate = escalate
        self._clock = clock
        self.ai_flags = 0
        self.tab_switches = 0
        self.suspicious_activities: List[SuspicionRecord] = []
        self._switch_times: Deque[float] = deque()
        self._tab_escalated = False
        self._key_intervals: Deque[float] = deque(maxlen=config.TYPING_WINDOW)
        self._last_key_ms: Optional[float] = None
        self._typing_streak = 0

    # ---- log ----
    def _record(self, kind: SuspicionKind, **payload: Any) -> SuspicionRecord:
        rec = SuspicionRecord(kind=kind, timestamp=_utc_iso(self._clock()), payload=payload)
        self.suspicious_activities.append(rec)
        log.debug("suspicion kind=%s payload=%s", kind.value, payload)
        return rec

    def _notify(self, kind: AlertKind, payload: Dict[str, Any]) -> None:
        if self._escalate is not None:
            self._escalate(kind, payload)

    def count(self, kind: SuspicionKind) -> int:
        return sum(1 for r in self.suspicious_activities if r.kind == kind)

    # ---- text ----
    def inspect_text(self, text: str, question_id: Optional[int] = None) -> bool:
        pattern = ai_phrase_match(text)
        if pattern is None:
            return False
        self.ai_flags += 1
        self._record(
            SuspicionKind.AI_CONTENT_DETECTED,
            question=question_id,
            pattern=pattern,
            excerpt=text[: config.AI_EXCERPT_CHARS],
        )
        severity = None
        if self.ai_flags == config.AI_NOTICE_AT:
            severity = "low"
        elif self.ai_flags == config.AI_ESCALATE_AT:
            severity = "high"
        if severity:
            self._notify(AlertKind.AI_CONTENT_DETECTED, {
                "severity": severity,
                "flags": self.ai_flags,
                "question": question_id,
            })
        return True

    # ---- focus ----
    def inspect_focus_change(self, hidden: bool) -> bool:
        """Count a switch away from the page; True when this event escalated."""
        if not hidden:
            return False
        now = self._clock()
        self.tab_switches += 1
        self._record(SuspicionKind.TAB_SWITCH, count=self.tab_switches)

        self._switch_times.append(now)
        while self._switch_times and now - self._switch_times[0] > config.TAB_BURST_WINDOW_SEC:
            self._switch_times.popleft()
        burst = len(self._switch_times) >= config.TAB_BURST_COUNT
        cumulative = self.tab_switches >= config.TAB_SWITCH_LIMIT

        if self._tab_escalated or not (burst or cumulative):
            return False
        self._tab_escalated = True
        log.info("tab switching escalated switches=%d burst=%s", self.tab_switches, burst)
        self._notify(AlertKind.EXCESSIVE_TAB_SWITCHING, {
            "severity": "high",
            "tab_switches": self.tab_switches,
            "reason": "burst" if burst else "cumulative",
        })
        return True

    # ---- typing ----
    def record_keystroke(self, t_ms: float) -> bool:
        if self._last_key_ms is not None:
            self._key_intervals.append(max(0.0, float(t_ms) - self._last_key_ms))
        self._last_key_ms = float(t_ms)
        if len(self._key_intervals) < config.TYPING_WINDOW:
            return False
        return self.inspect_keystroke_timing(list(self._key_intervals))

    def inspect_keystroke_timing(self, intervals_ms: Sequence[float]) -> bool:
        window = [float(x) for x in list(intervals_ms)[-config.TYPING_WINDOW:]]
        if len(window) < 2:
            return False
        avg = mean(window)
        var = pvariance(window, mu=avg)
        if var < config.TYPING_VARIANCE_MAX or avg < config.TYPING_MEAN_MIN_MS:
            self._typing_streak += 1
        else:
            self._typing_streak = 0
            return False
        if self._typing_streak < config.TYPING_STREAK:
            return False
        self._typing_streak = 0
        self._record(
            SuspicionKind.UNNATURAL_TYPING_PATTERN,
            mean_ms=round(avg, 2),
            variance=round(var, 2),
        )
        return True

    # ---- misc events ----
    def record_clipboard(self, action: str) -> SuspicionRecord:
        kind = SuspicionKind.PASTE_ACTION if action.lower() == "paste" else SuspicionKind.COPY_ACTION
        return self._record(kind)

    def record_skip(self, index: int) -> SuspicionRecord:
        return self._record(SuspicionKind.QUESTION_SKIPPED, question=index)

    def summary(self) -> Dict[str, int]:
        return {
            "suspicious_activities": len(self.suspicious_activities),
            "ai_flags": self.ai_flags,
            "tab_switches": self.tab_switches,
        }
