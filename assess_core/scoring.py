from __future__ import annotations
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple
import logging

from .types import Answer, Grade, Question, QuestionScore, QuestionStatus, ScoreReport
from .heuristics import contains_technical_terms, looks_like_code, uses_advanced_apis
from . import config

log = logging.getLogger(__name__)


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def evaluate_text_answer(text: str, max_points: float) -> float:
    if not isinstance(text, str) or not text.strip():
        return 0.0
    n = len(text.strip())
    frac = sum(w for floor, w in config.TEXT_LENGTH_TIERS if n >= floor)
    if contains_technical_terms(text):
        frac += config.TEXT_KEYWORD_WEIGHT
    return max_points * frac


def evaluate_code_answer(code: str, max_points: float) -> float:
    if not isinstance(code, str) or not code.strip():
        return 0.0
    frac = 0.0
    if len(code.strip()) >= config.CODE_MIN_LENGTH:
        frac += config.CODE_LENGTH_WEIGHT
    if looks_like_code(code):
        frac += config.CODE_SYNTAX_WEIGHT
    if uses_advanced_apis(code):
        frac += config.CODE_ADVANCED_WEIGHT
    return max_points * frac


def _split_scores(question: Question, answer: Optional[Answer]) -> Tuple[float, float]:
    if answer is None:
        return 0.0, 0.0
    text_score = code_score = 0.0
    if question.requires_text and answer.text:
        text_score = _clamp(
            evaluate_text_answer(answer.text, question.points * config.TEXT_SHARE),
            0.0, question.points * config.TEXT_SHARE,
        )
    if question.requires_code and answer.code:
        code_score = _clamp(
            evaluate_code_answer(answer.code, question.points * config.CODE_SHARE),
            0.0, question.points * config.CODE_SHARE,
        )
    return text_score, code_score


def evaluate_answer(question: Question, answer: Optional[Answer]) -> float:
    """Heuristic award in [0, question.points]."""
    text_score, code_score = _split_scores(question, answer)
    return _clamp(text_score + code_score, 0.0, float(question.points))


def calculate_final_score(
    answers: Mapping[int, Answer],
    bank: Sequence[Question],
    denominator: Optional[str] = None,
) -> int:
    """
    Percentage of earned over possible points, rounded and clamped to 0..100.

    With the default "attempted" denominator only questions holding an answer
    count toward the possible points; "all" uses the whole bank. No attempted
    questions scores 0.
    """
    mode = (denominator or config.SCORE_DENOMINATOR or "attempted").lower()
    by_index = {q.index: q for q in bank}
    earned = 0.0
    possible = 0
    for idx, ans in answers.items():
        q = by_index.get(int(idx))
        if q is None or ans is None or not ans.has_content():
            continue
        earned += evaluate_answer(q, ans)
        possible += q.points
    if mode == "all":
        possible = sum(q.points for q in bank)
    if possible <= 0:
        return 0
    return int(_clamp(round(earned / possible * 100.0), 0, 100))


def get_final_grade(
    score: float,
    thresholds: Optional[Sequence[Tuple[int, Grade]]] = None,
) -> Grade:
    table = thresholds or config.GRADE_THRESHOLDS
    for floor, grade in table:
        if score >= floor:
            return grade
    return Grade.NOT_QUALIFIED


def build_score_report(
    answers: Mapping[int, Answer],
    bank: Sequence[Question],
    status_of: Callable[[int], QuestionStatus],
    thresholds: Optional[Sequence[Tuple[int, Grade]]] = None,
    denominator: Optional[str] = None,
) -> ScoreReport:
    breakdown: List[QuestionScore] = []
    earned = 0.0
    attempted = 0
    possible = 0
    for q in bank:
        ans = answers.get(q.index)
        text_score, code_score = _split_scores(q, ans)
        awarded = _clamp(text_score + code_score, 0.0, float(q.points))
        if ans is not None and ans.has_content():
            attempted += 1
            earned += awarded
            possible += q.points
        breakdown.append(QuestionScore(
            index=q.index, points=q.points, awarded=awarded,
            text_score=text_score, code_score=code_score, status=status_of(q.index),
        ))
    final = calculate_final_score(answers, bank, denominator=denominator)
    if (denominator or config.SCORE_DENOMINATOR or "attempted").lower() == "all":
        possible = sum(q.points for q in bank)
    grade = get_final_grade(final, thresholds)
    log.debug("score attempted=%d earned=%.3f possible=%d final=%d grade=%s",
              attempted, earned, possible, final, grade.value)
    return ScoreReport(
        final_score=final,
        grade=grade,
        attempted=attempted,
        earned_points=earned,
        possible_points=possible,
        breakdown=breakdown,
    )

