from __future__ import annotations

import time

import pytest

from selfheal.config.schema import HealingConfig
from selfheal.core.descriptor import parse_descriptor
from selfheal.core.exceptions import (
    HealServiceConnectionError,
    HealServiceDecodeError,
    HealServiceHTTPError,
    HealServiceTimeoutError,
)
from selfheal.service.client import HttpHealServiceClient, create_heal_service_client
from selfheal.service.dto import Candidate, build_heal_request
from selfheal.service.parser import decode_heal_response, truncate
from tests.helpers import closed_port_url, running_heal_service


def sample_request():
    candidates = [
        Candidate.model_validate(
            {"xpath": "//input[@name='pwd']", "text": "Password", "idx": 0, "ariaLabel": "Secret", "dataTestId": "pw"}
        )
    ]
    return build_heal_request(parse_descriptor("//input[@id='passcode']"), candidates, text="passcode password")


def test_successful_call_posts_to_heal_endpoint():
    body = {"healed_xpath": "//input[@name='pwd']", "confidence": 0.42, "decision": "auto_heal", "extra": 1}
    with running_heal_service(body) as service:
        response = HttpHealServiceClient(service.url + "/").heal(sample_request())

    assert response.healed_xpath == "//input[@name='pwd']"
    assert response.confidence == pytest.approx(0.42)
    assert response.service_decision == "auto_heal"

    (received,) = service.received
    assert received["path"] == "/heal"
    assert received["payload"]["old"] == {
        "text": "passcode password",
        "tag": "input",
        "xpath": "//input[@id='passcode']",
        "intent": "password",
        "idx": 0,
    }
    candidate = received["payload"]["candidates"][0]
    assert candidate["ariaLabel"] == "Secret"
    assert candidate["dataTestId"] == "pw"
    assert candidate["text"] == "Password"


def test_http_status_error_carries_truncated_body():
    with running_heal_service("x" * 2000, status=422) as service:
        with pytest.raises(HealServiceHTTPError) as excinfo:
            HttpHealServiceClient(service.url).heal(sample_request())

    error = excinfo.value
    assert error.status == 422
    assert error.kind == "http_status"
    assert error.body.endswith("...(truncated)")
    assert len(error.body) == 800 + len("...(truncated)")
    assert "/heal" in str(error)
    assert "elapsedMs=" in str(error)


def test_invalid_json_is_a_decode_error():
    with running_heal_service("<html>oops</html>") as service:
        with pytest.raises(HealServiceDecodeError) as excinfo:
            HttpHealServiceClient(service.url).heal(sample_request())

    assert excinfo.value.kind == "decode"
    assert "<html>oops</html>" in excinfo.value.body


def test_json_null_means_no_suggestion():
    with running_heal_service("null") as service:
        assert HttpHealServiceClient(service.url).heal(sample_request()) is None


def test_non_object_json_is_a_decode_error():
    with running_heal_service("[1, 2]") as service:
        with pytest.raises(HealServiceDecodeError, match="list instead of an object"):
            HttpHealServiceClient(service.url).heal(sample_request())


def test_malformed_fields_become_absent():
    body = {"healed_xpath": 12, "confidence": True, "decision": ["auto_heal"]}
    with running_heal_service(body) as service:
        response = HttpHealServiceClient(service.url).heal(sample_request())

    assert response.healed_xpath is None
    assert response.confidence is None
    assert response.service_decision == ""
    assert not response.has_suggestion


def test_connection_refused():
    with pytest.raises(HealServiceConnectionError) as excinfo:
        HttpHealServiceClient(closed_port_url(), connect_timeout=1.0, call_timeout=2.0).heal(sample_request())

    assert excinfo.value.kind == "connection"
    assert excinfo.value.url.endswith("/heal")


def test_slow_service_times_out():
    with running_heal_service({"healed_xpath": "//a", "confidence": 1.0}, delay=1.5) as service:
        client = HttpHealServiceClient(service.url, connect_timeout=0.2, call_timeout=0.5)
        with pytest.raises(HealServiceTimeoutError) as excinfo:
            client.heal(sample_request())

    assert excinfo.value.kind == "timeout"


def test_trickling_body_is_cut_off_at_the_call_budget():
    body = {"healed_xpath": "//input[@name='pwd']", "confidence": 0.9}
    with running_heal_service(body, drip=0.25) as service:
        client = HttpHealServiceClient(service.url, connect_timeout=0.5, call_timeout=1.0)
        started = time.monotonic()
        with pytest.raises(HealServiceTimeoutError) as excinfo:
            client.heal(sample_request())
        elapsed = time.monotonic() - started

    # the full body would take over 10 seconds to arrive
    assert elapsed < 2.0
    assert excinfo.value.elapsed_ms >= 900


def test_call_timeout_is_never_shorter_than_connect_timeout():
    client = HttpHealServiceClient("http://127.0.0.1:8000", connect_timeout=3.0, call_timeout=1.0)
    assert client.call_timeout == 3.0


def test_factory_prefers_environment_url(monkeypatch):
    monkeypatch.setenv("HEAL_SERVICE_URL", "http://heal.internal:9000")
    client = create_heal_service_client(HealingConfig(connect_timeout_seconds=2, call_timeout_seconds=4))

    assert client.endpoint == "http://heal.internal:9000/heal"
    assert client.connect_timeout == 2
    assert client.call_timeout == 4


def test_factory_uses_configured_url(monkeypatch):
    monkeypatch.delenv("HEAL_SERVICE_URL", raising=False)
    client = create_heal_service_client(HealingConfig(service_url="http://127.0.0.1:8123/"))

    assert client.endpoint == "http://127.0.0.1:8123/heal"


def test_decode_rejects_empty_body():
    with pytest.raises(HealServiceDecodeError, match="empty body"):
        decode_heal_response("   ", url="http://x/heal", elapsed_ms=3)


def test_truncate():
    assert truncate(None) == ""
    assert truncate("short") == "short"
    assert truncate("abcdef", 3) == "abc...(truncated)"
