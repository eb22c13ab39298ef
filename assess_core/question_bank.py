from __future__ import annotations
import json
from pathlib import Path
from typing import List, Optional
from .types import Question

_BANK_PATH = Path(__file__).parent / "data" / "questions.json"


def load_bank(path: Optional[str] = None) -> List[Question]:
    src = Path(path) if path else _BANK_PATH
    raw = json.loads(src.read_text(encoding="utf-8"))
    bank = [Question(index=i, **r) for i, r in enumerate(raw, start=1)]
    for q in bank:
        if q.points <= 0:
            raise ValueError(f"question {q.index} must be worth at least one point")
    return bank


def total_points(bank: List[Question]) -> int:
    return sum(q.points for q in bank)
