from __future__ import annotations

import pytest

from assess_core import config
from assess_core.scoring import (
    build_score_report,
    calculate_final_score,
    evaluate_answer,
    evaluate_code_answer,
    evaluate_text_answer,
    get_final_grade,
)
from assess_core.types import Answer, Grade, Question, QuestionStatus

from tests.conftest import build_question_bank


def _text_of(length: int, keyword: str = "") -> str:
    body = keyword + " " if keyword else ""
    return body + "a" * max(0, length - len(body))


def test_six_point_scenario_hits_the_cap():
    q = Question(index=1, text="q", requires_text=True, requires_code=True, points=6)
    text = _text_of(320, "exploit")
    code = "local mt = getrawmetatable(game)\nhookmetamethod(game, '__namecall', function() end)"
    assert len(text) == 320

    text_part = evaluate_text_answer(text, 6 * config.TEXT_SHARE)
    code_part = evaluate_code_answer(code, 6 * config.CODE_SHARE)
    assert text_part == pytest.approx(3.6)
    assert code_part == pytest.approx(2.4)
    assert evaluate_answer(q, Answer(text=text, code=code)) == pytest.approx(6.0)


def test_text_tiers_and_keyword_bonus():
    budget = 10.0
    assert evaluate_text_answer("", budget) == 0.0
    assert evaluate_text_answer(_text_of(49), budget) == 0.0
    assert evaluate_text_answer(_text_of(50), budget) == pytest.approx(2.0)
    assert evaluate_text_answer(_text_of(150), budget) == pytest.approx(4.0)
    assert evaluate_text_answer(_text_of(300), budget) == pytest.approx(6.0)
    assert evaluate_text_answer("The SERVER trusts nothing", budget) == pytest.approx(4.0)


def test_code_checks_are_independent():
    budget = 10.0
    assert evaluate_code_answer("x", budget) == 0.0
    assert evaluate_code_answer("print(1)+2", budget) == pytest.approx(2.0)
    assert evaluate_code_answer("local x = 1", budget) == pytest.approx(6.0)
    assert evaluate_code_answer("newcclosure(f)", budget) == pytest.approx(6.0)


def test_channels_only_count_when_required():
    text_only = Question(index=1, text="q", requires_text=True, requires_code=False, points=5)
    ans = Answer(text=None, code="local mt = getrawmetatable(game)")
    assert evaluate_answer(text_only, ans) == 0.0
    assert evaluate_answer(text_only, None) == 0.0


def test_final_score_uses_attempted_denominator():
    bank = build_question_bank(4, points=5, code_every=0)
    full = _text_of(320, "metamethod")
    answers = {1: Answer(text=full), 2: Answer(text=full)}

    assert calculate_final_score(answers, bank) == 60
    assert calculate_final_score(answers, bank, denominator="all") == 30


def test_final_score_bounds_and_empty_cases():
    bank = build_question_bank(3)
    assert calculate_final_score({}, bank) == 0
    assert calculate_final_score({1: Answer(text="   ", code="")}, bank) == 0
    assert calculate_final_score({99: Answer(text="orphan answer text")}, bank) == 0

    bank = build_question_bank(3, code_every=1)
    rich = {q.index: Answer(text=_text_of(400, "hook"), code="local f = hookfunction") for q in bank}
    assert calculate_final_score(rich, bank) == 100


@pytest.mark.parametrize(
    "score,grade",
    [
        (0, Grade.NOT_QUALIFIED),
        (39, Grade.NOT_QUALIFIED),
        (40, Grade.TRAINEE),
        (59, Grade.TRAINEE),
        (60, Grade.JUNIOR),
        (75, Grade.REGULAR),
        (89, Grade.REGULAR),
        (90, Grade.SENIOR),
        (100, Grade.SENIOR),
    ],
)
def test_grade_ladder(score, grade):
    assert get_final_grade(score) == grade


def test_grade_table_is_configurable():
    cfg = {"grade_thresholds": [[60, "junior"], [90, "senior"], [75, "regular"], [0, "not_qualified"]]}
    table = config.grade_thresholds(cfg)
    assert [floor for floor, _ in table] == [90, 75, 60, 0]
    assert get_final_grade(45, table) == Grade.NOT_QUALIFIED
    assert get_final_grade(61, table) == Grade.JUNIOR
    assert config.grade_thresholds({"grade_thresholds": [[50, "nope"]]}) == config.GRADE_THRESHOLDS


def test_score_report_breakdown_statuses():
    bank = build_question_bank(3, points=4)
    answers = {1: Answer(text=_text_of(60, "remote"))}
    statuses = {1: QuestionStatus.COMPLETED, 2: QuestionStatus.SKIPPED}

    report = build_score_report(answers, bank, lambda i: statuses.get(i, QuestionStatus.NOT_ATTEMPTED))

    assert report.attempted == 1
    assert report.possible_points == 4
    assert [row.status for row in report.breakdown] == [
        QuestionStatus.COMPLETED,
        QuestionStatus.SKIPPED,
        QuestionStatus.NOT_ATTEMPTED,
    ]
    assert report.breakdown[0].awarded == pytest.approx(4 * 0.6 * 0.6)
    assert report.final_score == 36
    assert report.grade == Grade.NOT_QUALIFIED
    assert report.to_dict()["grade"] == "NOT QUALIFIED"
