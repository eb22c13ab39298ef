from __future__ import annotations

import json

import pytest

import autoplay
from app_cli import run_assessment
from assess_core.question_bank import load_bank, total_points
from assess_core.session import AssessmentSession
from assess_core.types import Grade, Phase, Question, SuspicionKind

from tests.conftest import GOOD_TEXT, PROFILE, RecordingNotifier, build_question_bank


def test_bundled_bank_is_indexed_from_one():
    bank = load_bank()
    assert [q.index for q in bank] == list(range(1, len(bank) + 1))
    assert len(bank) == 18
    assert all(q.points > 0 for q in bank)
    assert total_points(bank) == sum(q.points for q in bank)


def test_bank_rejects_non_positive_points(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text(json.dumps([{"text": "q", "points": 0}]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_bank(path)


def test_autoplay_strong_profile_scores_senior():
    res = autoplay.run("strong", session=AssessmentSession(bank=build_question_bank(4, code_every=1)))
    assert res.score.final_score == 100
    assert res.score.grade == Grade.SENIOR
    assert res.filename.startswith("autoplayer_DXT-")


def test_autoplay_weak_profile_with_skips():
    sess = AssessmentSession(bank=build_question_bank(4), skip_credits=2)
    res = autoplay.run("weak", skips=5, session=sess)

    assert sess.phase == Phase.SUBMITTED
    assert sess.skips_remaining == 0
    assert sess.monitor.count(SuspicionKind.QUESTION_SKIPPED) == 2
    assert res.score.grade == Grade.NOT_QUALIFIED


def test_autoplay_ai_profile_escalates():
    notifier = RecordingNotifier()
    sess = AssessmentSession(bank=build_question_bank(3), notifier=notifier)
    autoplay.run("ai-like", session=sess)

    assert sess.monitor.ai_flags == 3
    assert [a.payload["severity"] for a, _ in notifier.calls if a.kind.value == "AI_CONTENT_DETECTED"] == [
        "low",
        "high",
    ]


def test_console_run_writes_report(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ASSESS_WEBHOOK_URL", raising=False)
    monkeypatch.setattr("assess_core.session.load_bank", lambda: build_question_bank(2))

    profile = PROFILE.to_dict()
    inputs = iter(
        [""]
        + [profile[f] for f in run_assessment.REQUIRED_PROFILE_FIELDS]
        + [""]
        + [":help", GOOD_TEXT]
        + [GOOD_TEXT, "local mt = getrawmetatable(game)", "END"]
    )
    monkeypatch.setattr("builtins.input", lambda *a: next(inputs))

    res = run_assessment.main()

    out = capsys.readouterr().out
    assert "Admin has been notified." in out
    report = tmp_path / "reports" / res.filename
    assert report.read_text(encoding="utf-8") == res.document
    assert "Status: completed" in res.document


def test_console_commands_work_on_code_only_questions(started, monkeypatch, notifier):
    bank = [
        Question(index=1, text="Write a hook.", requires_text=False, requires_code=True, points=5),
        Question(index=2, text="Explain it.", requires_text=True, requires_code=False, points=5),
    ]
    session = started(bank=bank)
    inputs = iter([":help", "END", ":skip", "END"])
    monkeypatch.setattr("builtins.input", lambda *a: next(inputs))

    run_assessment.play_question(session)
    assert notifier.kinds()[-1].value == "HELP_REQUEST"
    assert session.current_question.index == 1

    run_assessment.play_question(session)
    assert session.answers.skipped == [1]
    assert session.current_question.index == 2
    assert session.answers.value(1, "code") == ""
