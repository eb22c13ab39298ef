from __future__ import annotations
from typing import Dict, Iterable, List, Optional

from .types import Answer, AnswerKind, QuestionStatus


class AnswerStore:
    """Collected answers keyed by question index, plus completed/skipped tracking.

    Skipped indices keep first-skipped-first-revisited order; a dict is used as
    the ordered set.
    """

    def __init__(self) -> None:
        self._answers: Dict[int, Answer] = {}
        self._completed: set[int] = set()
        self._skipped: Dict[int, None] = {}

    # ---- answers ----
    def save(self, index: int, kind: AnswerKind, value: Optional[str]) -> Answer:
        ans = self._answers.setdefault(index, Answer())
        if kind == AnswerKind.TEXT:
            ans.text = value
        else:
            ans.code = value
        return ans

    def value(self, index: int, kind: AnswerKind) -> str:
        ans = self._answers.get(index)
        return (ans.get(kind) if ans else None) or ""

    def items(self) -> Dict[int, Answer]:
        return dict(self._answers)

    # ---- completion / skip sets ----
    def mark_completed(self, index: int) -> None:
        self._completed.add(index)
        self._skipped.pop(index, None)

    def unmark_completed(self, index: int) -> None:
        self._completed.discard(index)

    def mark_skipped(self, index: int) -> None:
        self._completed.discard(index)
        self._skipped.setdefault(index, None)

    def unskip(self, index: int) -> None:
        self._skipped.pop(index, None)

    @property
    def completed(self) -> set[int]:
        return set(self._completed)

    @property
    def skipped(self) -> List[int]:
        return list(self._skipped)

    def status(self, index: int) -> QuestionStatus:
        if index in self._completed:
            return QuestionStatus.COMPLETED
        if index in self._skipped:
            return QuestionStatus.SKIPPED
        return QuestionStatus.NOT_ATTEMPTED

    # ---- snapshot ----
    def to_snapshot(self) -> Dict[str, object]:
        return {
            "answers": {str(i): a.to_dict() for i, a in sorted(self._answers.items())},
            "skippedQuestions": list(self._skipped),
            "completedQuestions": sorted(self._completed),
        }

    def load(
        self,
        answers: Dict[int, Answer],
        completed: Iterable[int],
        skipped: Iterable[int],
    ) -> None:
        self._answers = dict(answers)
        self._completed = set(completed)
        self._skipped = {i: None for i in skipped if i not in self._completed}
