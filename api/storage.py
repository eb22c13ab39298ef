"""Utility helpers for persisting submitted reports and in-flight progress.

Plain JSON files on disk keep the API stateless across restarts: one file per
submitted report (plus an index for lookups by candidate) and one progress
snapshot file per live session.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from assess_core.persist import ProgressStore


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
REPORTS_DIR = DATA_ROOT / "reports"
PROGRESS_DIR = DATA_ROOT / "progress"
REPORT_INDEX_PATH = DATA_ROOT / "reports_index.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    DATA_ROOT.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_report(session_id: str, report: Dict[str, Any], document: str, metadata: Dict[str, Any]) -> None:
    """Persist the report JSON, its plain-text document and index metadata."""

    _ensure_dirs()
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(REPORT_INDEX_PATH, {})
        index[session_id] = metadata
        _write_json(REPORT_INDEX_PATH, index)

    _write_json(REPORTS_DIR / f"{session_id}.json", report)
    (REPORTS_DIR / f"{session_id}.txt").write_text(document, encoding="utf-8")


def load_report(session_id: str) -> Optional[Dict[str, Any]]:
    report = _read_json(REPORTS_DIR / f"{session_id}.json", None)
    return report if isinstance(report, dict) else None


def load_report_document(session_id: str) -> Optional[str]:
    path = REPORTS_DIR / f"{session_id}.txt"
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def list_reports_for_candidate(username: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(REPORT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for sid, meta in index.items():
        if meta.get("username") == username:
            item = {"sessionId": sid}
            item.update({k: v for k, v in meta.items() if k != "sessionId"})
            out.append(item)
    out.sort(key=lambda r: r.get("submittedAt", ""), reverse=True)
    return out


def progress_store(session_id: str) -> ProgressStore:
    return ProgressStore(PROGRESS_DIR / f"{session_id}.json")


def clear_progress(session_id: str) -> None:
    with _LOCK:
        progress_store(session_id).clear()
