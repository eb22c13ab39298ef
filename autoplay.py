# autoplay.py
from __future__ import annotations
import argparse, logging, os
from typing import Dict, Optional
from assess_core.types import AnswerKind, CandidateProfile, Question
from assess_core.session import AssessmentSession, SubmissionResult
from assess_core.config import DEBUG_TRACE

STRONG_TEXT = (
    "I hook the game metatable through getrawmetatable, lift the read-only flag with setreadonly "
    "and wrap the original __namecall handler in a closure so remote calls from the client can be "
    "inspected before they reach the server. Checking getnamecallmethod keeps the hook narrow, "
    "and checkcaller stops my own calls from recursing. Upvalues are kept local so the hook stays "
    "stable after the game reloads its scripts."
)
STRONG_CODE = (
    "local mt = getrawmetatable(game)\n"
    "local old = mt.__namecall\n"
    "setreadonly(mt, false)\n"
    "mt.__namecall = newcclosure(function(self, ...)\n"
    "    if getnamecallmethod() == \"Kick\" and not checkcaller() then return end\n"
    "    return old(self, ...)\n"
    "end)\n"
    "setreadonly(mt, true)\n"
)
WEAK_TEXT = "Not sure, I would look it up first."
AI_TEXT = "As an AI language model, I cannot provide that, but here is a general overview of hooking."

DEMO_PROFILE = CandidateProfile(
    full_name="Auto Player", username="autoplayer", discord_id="autoplayer#0001", age="21",
    nationality="N/A", timezone="UTC", availability="20h/week", experience="3 years",
    motivation="Scripted smoke run.",
)


def _answers_for(q: Question, profile: str) -> Dict[AnswerKind, str]:
    if profile == "weak":
        out = {AnswerKind.TEXT: WEAK_TEXT}
        if q.requires_code: out[AnswerKind.CODE] = "print('hi')"
        return out
    text = AI_TEXT + " " + STRONG_TEXT if profile == "ai-like" else STRONG_TEXT
    out = {AnswerKind.TEXT: text}
    if q.requires_code: out[AnswerKind.CODE] = STRONG_CODE
    return out


def run(profile: str, skips: int = 0, session: Optional[AssessmentSession] = None) -> SubmissionResult:
    sess = session or AssessmentSession()
    sess.accept_rules()
    sess.start_assessment(DEMO_PROFILE)
    while sess.current_question is not None:
        q = sess.current_question
        credits = sess.skips_remaining
        if skips > 0 and (credits is None or credits > 0) and not sess.in_skip_resolution:
            skips -= 1
            sess.skip()
            continue
        for kind, value in _answers_for(q, profile).items():
            sess.save_answer(q.index, kind, value)
        sess.advance()
    res = sess.submit()
    if res is None: raise RuntimeError("Submission did not complete.")
    return res


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--profile", choices=["strong", "weak", "ai-like"], default="strong")
    ap.add_argument("--skips", type=int, default=0)
    ap.add_argument("--out", default="reports")
    a = ap.parse_args()
    logging.basicConfig(level=logging.DEBUG if DEBUG_TRACE else logging.INFO, format="[%(levelname)s] %(message)s")
    res = run(a.profile, a.skips)
    os.makedirs(a.out, exist_ok=True)
    path = os.path.join(a.out, res.filename)
    with open(path, "w", encoding="utf-8") as f: f.write(res.document)
    print(f"Score {res.score.final_score}/100 ({res.score.grade.value}). Report: {path}")


if __name__ == "__main__":
    main()
