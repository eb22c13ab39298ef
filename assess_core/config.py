from __future__ import annotations
import os, json, pathlib

from .types import Grade


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# ---- session ----
SKIP_CREDITS: int = 2
MIN_TEXT_CHARS: int = 20
MIN_CODE_CHARS: int = 10
SESSION_ID_PREFIX: str = "DXT"

PROGRESS_RULES: float = 0.0
PROGRESS_PERSONAL_INFO: float = 10.0
PROGRESS_ASSESSMENT_BASE: float = 25.0
PROGRESS_ASSESSMENT_SPAN: float = 65.0
PROGRESS_SUBMITTING: float = 95.0
PROGRESS_SUBMITTED: float = 100.0

REQUIRED_PROFILE_FIELDS: tuple[str, ...] = (
    "full_name",
    "username",
    "discord_id",
    "age",
    "nationality",
    "timezone",
    "availability",
    "experience",
    "motivation",
)

# ---- scoring ----
TEXT_SHARE: float = 0.6
CODE_SHARE: float = 0.4
# (min_chars, fraction of the text budget)
TEXT_LENGTH_TIERS: tuple[tuple[int, float], ...] = ((50, 0.2), (150, 0.2), (300, 0.2))
TEXT_KEYWORD_WEIGHT: float = 0.4
CODE_MIN_LENGTH: int = 10
CODE_LENGTH_WEIGHT: float = 0.2
CODE_SYNTAX_WEIGHT: float = 0.4
CODE_ADVANCED_WEIGHT: float = 0.4

# "attempted": only answered questions count toward the denominator.
# "all": every question in the bank counts, unanswered ones as zero.
SCORE_DENOMINATOR: str = "attempted"

# descending (min_score, grade); first match wins
GRADE_THRESHOLDS: tuple[tuple[int, Grade], ...] = (
    (90, Grade.SENIOR),
    (75, Grade.REGULAR),
    (60, Grade.JUNIOR),
    (40, Grade.TRAINEE),
    (0, Grade.NOT_QUALIFIED),
)

TECHNICAL_TERMS: tuple[str, ...] = (
    "metamethod",
    "metatable",
    "hook",
    "exploit",
    "remote",
    "client",
    "server",
    "protection",
    "bypass",
    "namecall",
    "closure",
    "upvalue",
)
SYNTAX_TOKENS: tuple[str, ...] = ("function", "local", "=", "end", "return")
ADVANCED_APIS: tuple[str, ...] = (
    "hookmetamethod",
    "hookfunction",
    "getrawmetatable",
    "setreadonly",
    "newcclosure",
    "checkcaller",
    "getnamecallmethod",
    "protectgui",
)

# ---- integrity ----
AI_PHRASES: tuple[str, ...] = (
    r"as an ai language model",
    r"i am an ai assistant",
    r"i'?m an ai\b",
    r"according to my knowledge",
    r"based on the information",
    r"i don'?t have personal opinions",
    r"as of my (last )?knowledge (cutoff|update)",
    r"i hope this helps",
)
AI_NOTICE_AT: int = 1
AI_ESCALATE_AT: int = 3
TAB_BURST_WINDOW_SEC: float = 5.0
TAB_BURST_COUNT: int = 3
TAB_SWITCH_LIMIT: int = 5
TYPING_WINDOW: int = 10
TYPING_VARIANCE_MAX: float = 100.0
TYPING_MEAN_MIN_MS: float = 50.0
TYPING_STREAK: int = 3
AI_EXCERPT_CHARS: int = 100

# ---- persistence / delivery ----
PROGRESS_KEY: str = "assessment_progress"
AUTOSAVE_INTERVAL_SEC: float = 30.0
WEBHOOK_URL: str = ""
WEBHOOK_TIMEOUT_SEC: float = 10.0
ALERT_USERNAME: str = "Dexxter Services"

DEBUG_TRACE: bool = False

# // env overrides for staging/ops; defaults remain conservative.
SKIP_CREDITS = _env_int("SKIP_CREDITS", SKIP_CREDITS)
MIN_TEXT_CHARS = _env_int("MIN_TEXT_CHARS", MIN_TEXT_CHARS)
MIN_CODE_CHARS = _env_int("MIN_CODE_CHARS", MIN_CODE_CHARS)
TAB_SWITCH_LIMIT = _env_int("TAB_SWITCH_LIMIT", TAB_SWITCH_LIMIT)
TAB_BURST_WINDOW_SEC = _env_float("TAB_BURST_WINDOW_SEC", TAB_BURST_WINDOW_SEC)
TYPING_VARIANCE_MAX = _env_float("TYPING_VARIANCE_MAX", TYPING_VARIANCE_MAX)
AUTOSAVE_INTERVAL_SEC = _env_float("AUTOSAVE_INTERVAL_SEC", AUTOSAVE_INTERVAL_SEC)
SCORE_DENOMINATOR = os.getenv("SCORE_DENOMINATOR", SCORE_DENOMINATOR).strip().lower()
WEBHOOK_URL = os.getenv("ASSESS_WEBHOOK_URL", WEBHOOK_URL)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)


def load_config(path: str = "config.json") -> dict:
    """Merge an optional JSON config file with environment overrides."""
    cfg: dict = {}
    p = pathlib.Path(path)
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    if not isinstance(cfg, dict):
        cfg = {}
    e = os.environ
    if e.get("ASSESS_WEBHOOK_URL"): cfg["webhook_url"] = e.get("ASSESS_WEBHOOK_URL")
    if e.get("SKIP_CREDITS"): cfg["skip_credits"] = SKIP_CREDITS
    if e.get("SCORE_DENOMINATOR"): cfg["score_denominator"] = SCORE_DENOMINATOR
    return cfg


def grade_thresholds(cfg: dict | None = None) -> tuple[tuple[int, Grade], ...]:
    """Grade table from config (`{"grade_thresholds": [[90, "SENIOR"], ...]}`) or the default."""
    raw = (cfg or {}).get("grade_thresholds")
    if not isinstance(raw, list) or not raw:
        return GRADE_THRESHOLDS
    table: list[tuple[int, Grade]] = []
    try:
        for floor, name in raw:
            table.append((int(floor), Grade[str(name).upper()]))
    except (TypeError, ValueError, KeyError):
        return GRADE_THRESHOLDS
    table.sort(key=lambda row: row[0], reverse=True)
    return tuple(table)


def skip_credits(cfg: dict | None = None) -> int | None:
    """Configured skip budget; a negative value means unlimited."""
    raw = (cfg or {}).get("skip_credits", SKIP_CREDITS)
    try:
        val = int(raw)
    except (TypeError, ValueError):
        return SKIP_CREDITS
    return None if val < 0 else val
