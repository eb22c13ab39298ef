from __future__ import annotations
import logging, os
from assess_core.types import AnswerKind, CandidateProfile
from assess_core.session import AssessmentSession, SessionError
from assess_core.config import DEBUG_TRACE, REQUIRED_PROFILE_FIELDS, load_config, skip_credits
from assess_core.notifier import notifier_from_config
COMMANDS = "Commands: ':skip' skip question, ':help' call an admin."
def ask(prompt: str) -> str:
    return input(prompt + " ").strip()
def ask_code() -> str:
    print("Code answer (finish with a line containing only END):")
    lines = []
    while True:
        line = input()
        if line.strip() == "END": return "\n".join(lines)
        lines.append(line)
def ask_profile() -> CandidateProfile:
    vals = {f: ask(f"{f.replace('_', ' ').title()}:") for f in REQUIRED_PROFILE_FIELDS}
    vals["portfolio"] = ask("Portfolio (optional):")
    return CandidateProfile(**vals)
def run_command(session: AssessmentSession, raw: str) -> bool:
    if raw == ":skip": session.skip(); return True
    if raw == ":help": session.request_help(); print("Admin has been notified."); return True
    return False
def play_question(session: AssessmentSession) -> None:
    q = session.current_question
    left = "unlimited" if session.skips_remaining is None else session.skips_remaining
    print(f"\n--- Question {q.index}/{session.total_questions} | {q.points} points | skips left: {left} ---")
    print(q.text)
    if q.requires_text:
        txt = ask("Text answer:")
        if run_command(session, txt): return
        session.save_answer(q.index, AnswerKind.TEXT, txt)
    if q.requires_code:
        code = ask_code()
        # commands are read at the first prompt shown
        if not q.requires_text and run_command(session, code.strip()): return
        session.save_answer(q.index, AnswerKind.CODE, code)
    session.advance()
def main():
    logging.basicConfig(level=logging.DEBUG if DEBUG_TRACE else logging.WARNING, format="[%(levelname)s] %(message)s")
    cfg = load_config()
    print("Candidate Assessment")
    session = AssessmentSession(notifier=notifier_from_config(cfg), skip_credits=skip_credits(cfg), cfg=cfg)
    print("Rules: answer every question honestly; skips are limited; tab switches are logged.")
    ask("Press Enter to accept the rules.")
    session.accept_rules()
    while True:
        try: session.start_assessment(ask_profile()); break
        except SessionError as e: print(e)
    print(COMMANDS)
    while session.current_question is not None:
        try: play_question(session)
        except SessionError as e: print(f"! {e}")
    res = session.submit()
    os.makedirs("reports", exist_ok=True)
    path = os.path.join("reports", res.filename)
    with open(path, "w", encoding="utf-8") as f: f.write(res.document)
    print(f"Done. Score {res.score.final_score}/100 ({res.score.grade.value}). Report saved to: {path}")
    return res
if __name__ == "__main__": main()
