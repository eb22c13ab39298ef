# assess_core/heuristics.py
from __future__ import annotations
import re
from typing import Iterable, Optional

from .config import TECHNICAL_TERMS, SYNTAX_TOKENS, ADVANCED_APIS, AI_PHRASES


def _vocab_rx(words: Iterable[str], flags: int = 0) -> re.Pattern:
    return re.compile("|".join(re.escape(w) for w in words), flags)


_TERMS_RX    = _vocab_rx(TECHNICAL_TERMS, re.I)
_SYNTAX_RX   = _vocab_rx(SYNTAX_TOKENS)
_ADVANCED_RX = _vocab_rx(ADVANCED_APIS)
_AI_RXS      = tuple(re.compile(p, re.I) for p in AI_PHRASES)


def contains_technical_terms(text: str) -> bool:
    return bool(text) and bool(_TERMS_RX.search(text))


def looks_like_code(code: str) -> bool:
    return bool(code) and bool(_SYNTAX_RX.search(code))


def uses_advanced_apis(code: str) -> bool:
    return bool(code) and bool(_ADVANCED_RX.search(code))


def ai_phrase_match(text: str) -> Optional[str]:
    """Return the first AI-boilerplate pattern found in `text`, if any."""
    if not isinstance(text, str) or not text.strip():
        return None
    for rx in _AI_RXS:
        if rx.search(text):
            return rx.pattern
    return None
