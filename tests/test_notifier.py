from __future__ import annotations

import json
import logging
import random
import re

import httpx

from assess_core.notifier import NullNotifier, WebhookNotifier, build_webhook_payload, notifier_from_config
from assess_core.session import format_elapsed, generate_session_id
from assess_core.types import Alert, AlertKind, ReportAttachment

HOOK = "https://hooks.example.invalid/alerts"


def _alert(kind=AlertKind.HELP_REQUEST, **payload):
    payload.setdefault("candidate", "tester")
    return Alert(kind=kind, timestamp="2024-05-01T12:30:00+00:00", session_id="DXT-abc-def", payload=payload)


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_payload_shape():
    body = build_webhook_payload(_alert(question=4, time_elapsed="00:02:00"))
    assert body["content"].startswith("**Dexxter Services Alert** - HELP_REQUEST")
    embed = body["embeds"][0]
    names = [f["name"] for f in embed["fields"]]
    assert names[:3] == ["Alert Type", "Candidate", "Session"]
    assert "Question" in names and "Time Elapsed" in names
    assert embed["timestamp"] == "2024-05-01T12:30:00+00:00"


def test_candidate_dict_label():
    body = build_webhook_payload(_alert(AlertKind.APPLICATION_SUBMITTED, candidate={"username": "jdoe"}))
    assert body["embeds"][0]["fields"][1]["value"] == "jdoe"


def test_json_post_without_attachment():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    WebhookNotifier(HOOK, client=_client(handler)).notify(_alert())

    assert len(seen) == 1
    assert str(seen[0].url) == HOOK
    assert json.loads(seen[0].content)["embeds"][0]["fields"][0]["value"] == "HELP_REQUEST"


def test_multipart_post_with_report():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    notifier = WebhookNotifier(HOOK, client=_client(handler))
    notifier.notify(_alert(AlertKind.APPLICATION_SUBMITTED),
                    ReportAttachment(filename="tester_DXT-abc-def.txt", document="REPORT BODY"))

    req = seen[0]
    assert req.headers["content-type"].startswith("multipart/form-data")
    body = req.read()
    assert b"payload_json" in body
    assert b'filename="tester_DXT-abc-def.txt"' in body
    assert b"REPORT BODY" in body


def test_delivery_failure_is_logged_not_raised(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with caplog.at_level(logging.WARNING, logger="assess_core.notifier"):
        WebhookNotifier(HOOK, client=_client(handler)).notify(_alert())
    assert "webhook delivery failed" in caplog.text


def test_transport_error_is_swallowed(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with caplog.at_level(logging.WARNING, logger="assess_core.notifier"):
        WebhookNotifier(HOOK, client=_client(handler)).notify(_alert())
    assert "refused" in caplog.text


def test_notifier_from_config(monkeypatch):
    monkeypatch.setattr("assess_core.config.WEBHOOK_URL", "")
    assert isinstance(notifier_from_config({}), NullNotifier)
    hooked = notifier_from_config({"webhook_url": HOOK})
    assert isinstance(hooked, WebhookNotifier)
    hooked.close()


def test_session_id_format():
    sid = generate_session_id(now=1_700_000_000.0, rng=random.Random(7))
    assert re.fullmatch(r"DXT-[0-9a-z]+-[0-9a-z]+", sid)
    assert sid.split("-")[1] == "loyw3v28"
    assert generate_session_id() != generate_session_id()


def test_format_elapsed():
    assert format_elapsed(None) == "00:00:00"
    assert format_elapsed(-3) == "00:00:00"
    assert format_elapsed(59.9) == "00:00:59"
    assert format_elapsed(3 * 3600 + 61) == "03:01:01"
