from __future__ import annotations
import json, logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

import httpx

from . import config
from .types import Alert, AlertKind, ReportAttachment

log = logging.getLogger(__name__)

_COLORS = {
    AlertKind.HELP_REQUEST: 0x3498DB,
    AlertKind.APPLICATION_SUBMITTED: 0x2ECC71,
    AlertKind.AI_CONTENT_DETECTED: 0xFF0000,
    AlertKind.EXCESSIVE_TAB_SWITCHING: 0xFF0000,
}


class Notifier(Protocol):
    def notify(self, alert: Alert, attachment: Optional[ReportAttachment] = None) -> None: ...


class NullNotifier:
    def notify(self, alert: Alert, attachment: Optional[ReportAttachment] = None) -> None:
        log.debug("alert dropped kind=%s session=%s", alert.kind.value, alert.session_id)


def _candidate_label(payload: Dict[str, Any]) -> str:
    cand = payload.get("candidate")
    if isinstance(cand, dict):
        return str(cand.get("username") or cand.get("full_name") or "Unknown")
    return str(cand or "Unknown")


def build_webhook_payload(alert: Alert, username: str = config.ALERT_USERNAME) -> Dict[str, Any]:
    """Discord-style message: one embed with the alert summary fields."""
    fields = [
        {"name": "Alert Type", "value": alert.kind.value, "inline": True},
        {"name": "Candidate", "value": _candidate_label(alert.payload), "inline": True},
        {"name": "Session", "value": alert.session_id, "inline": True},
    ]
    for key in ("severity", "question", "score", "grade", "time_elapsed", "tab_switches", "flags"):
        if alert.payload.get(key) is not None:
            fields.append({"name": key.replace("_", " ").title(), "value": str(alert.payload[key]), "inline": True})
    try:
        when = datetime.fromisoformat(alert.timestamp).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        when = alert.timestamp
    return {
        "content": f"**{username} Alert** - {alert.kind.value} ({when})",
        "embeds": [{
            "title": "Assessment Alert",
            "color": _COLORS.get(alert.kind, 0xFF0000),
            "fields": fields,
            "timestamp": alert.timestamp,
        }],
    }


class WebhookNotifier:
    """Posts alerts to a webhook; reports go up as a text file attachment.

    Delivery is fire-and-forget: transport errors are logged and swallowed so
    the session never waits on or fails because of the webhook.
    """

    def __init__(
        self,
        url: str,
        timeout: float = config.WEBHOOK_TIMEOUT_SEC,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def notify(self, alert: Alert, attachment: Optional[ReportAttachment] = None) -> None:
        payload = build_webhook_payload(alert)
        try:
            if attachment is None:
                resp = self._client.post(self.url, json=payload)
            else:
                resp = self._client.post(
                    self.url,
                    data={"payload_json": json.dumps(payload)},
                    files={"file": (attachment.filename, attachment.document.encode("utf-8"), "text/plain")},
                )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("webhook delivery failed kind=%s session=%s: %s",
                        alert.kind.value, alert.session_id, e)
            return
        log.debug("webhook delivered kind=%s status=%s", alert.kind.value, resp.status_code)

    def close(self) -> None:
        self._client.close()


def notifier_from_config(cfg: Optional[dict] = None) -> Notifier:
    url = (cfg or {}).get("webhook_url") or config.WEBHOOK_URL
    if not url:
        return NullNotifier()
    return WebhookNotifier(str(url))
