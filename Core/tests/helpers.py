from __future__ import annotations

import json
import socket
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Iterator
from urllib.parse import quote

import pytest
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from selfheal.config.schema import EnvironmentConfig, HealingConfig
from selfheal.core.actions import SafeActions
from selfheal.core.browser import BrowserSession
from selfheal.core.engine import SelfHealingEngine
from selfheal.core.finder import SafeFinder
from selfheal.core.metadata import HealEvent
from selfheal.logging.sinks import HealEventSink
from selfheal.service.client import HealServiceClient, HttpHealServiceClient
from selfheal.service.dto import HealResponse


class FakeElement:
    def __init__(
        self,
        tag_name: str = "input",
        text: str = "",
        attributes: dict[str, str] | None = None,
        displayed: bool = True,
    ) -> None:
        self.tag_name = tag_name
        self.text = text
        self.attributes = attributes or {}
        self.displayed = displayed
        self.performed: list[tuple[str, Any]] = []

    def get_attribute(self, name: str):
        return self.attributes.get(name)

    def is_displayed(self) -> bool:
        return self.displayed

    def click(self) -> None:
        self.performed.append(("click", None))

    def clear(self) -> None:
        self.performed.append(("clear", None))

    def send_keys(self, value: str) -> None:
        self.performed.append(("send_keys", value))


class FakeSwitchTo:
    def __init__(self) -> None:
        self.default_content_calls = 0

    def default_content(self) -> None:
        self.default_content_calls += 1


class FakeDriver:
    """In-memory page: xpath lookups come from a map, the candidate script from a list."""

    def __init__(
        self,
        elements: dict[str, list[FakeElement]] | None = None,
        candidates: Any = None,
        script_error: Exception | None = None,
    ) -> None:
        self.elements = elements or {}
        self.candidates = [] if candidates is None else candidates
        self.script_error = script_error
        self.switch_to = FakeSwitchTo()
        self.lookups: list[tuple[str, str]] = []
        self.script_calls: list[tuple[Any, ...]] = []

    def find_elements(self, by: str, value: str) -> list[FakeElement]:
        self.lookups.append((by, value))
        return list(self.elements.get(value, []))

    def execute_script(self, script: str, *args: Any):
        self.script_calls.append(args)
        if self.script_error is not None:
            raise self.script_error
        return self.candidates


class StubHealClient(HealServiceClient):
    service_name = "stub"

    def __init__(self, response: HealResponse | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.requests = []

    def heal(self, heal_request):
        self.requests.append(heal_request)
        if self.error is not None:
            raise self.error
        return self.response


class RecordingSink(HealEventSink):
    def __init__(self) -> None:
        self.events: list[HealEvent] = []

    def emit(self, event: HealEvent) -> None:
        self.events.append(event)

    def stages(self) -> list[str]:
        return [event.stage for event in self.events]


def candidate_row(xpath: str, **fields: Any) -> dict[str, Any]:
    """Mirrors one row produced by the in-page candidate script."""

    row = {
        "xpath": xpath,
        "text": "",
        "tag": "input",
        "idx": 0,
        "ariaLabel": "",
        "id": "",
        "name": "",
        "className": "",
        "placeholder": "",
        "type": "",
        "value": "",
        "dataTestId": "",
    }
    row.update(fields)
    return row


def suggestion(xpath: str | None, confidence: float | None = 0.9, decision: str | None = "auto_heal") -> HealResponse:
    return HealResponse(healed_xpath=xpath, confidence=confidence, decision=decision)


def build_engine(
    driver: FakeDriver,
    client: HealServiceClient,
    sink: HealEventSink | None = None,
    **config_overrides: Any,
) -> SelfHealingEngine:
    config = HealingConfig(**config_overrides)
    return SelfHealingEngine(driver, config, client=client, sink=sink or RecordingSink())


class _HealServiceHandler(BaseHTTPRequestHandler):
    def do_POST(self) -> None:  # noqa: N802 - BaseHTTPRequestHandler naming.
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length).decode("utf-8")
        self.server.received.append({"path": self.path, "payload": json.loads(raw)})
        if self.server.delay:
            time.sleep(self.server.delay)
        body = self.server.body.encode("utf-8")
        try:
            self.send_response(self.server.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if not self.server.drip:
                self.wfile.write(body)
                return
            for index in range(len(body)):
                self.wfile.write(body[index : index + 1])
                time.sleep(self.server.drip)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002 - signature from the base class.
        return


@dataclass(slots=True)
class HealServiceStub:
    server: ThreadingHTTPServer

    @property
    def url(self) -> str:
        host, port = self.server.server_address[:2]
        return f"http://{host}:{port}"

    @property
    def received(self) -> list[dict[str, Any]]:
        return self.server.received


@contextmanager
def running_heal_service(
    body: str | dict | None,
    status: int = 200,
    delay: float = 0.0,
    drip: float = 0.0,
) -> Iterator[HealServiceStub]:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _HealServiceHandler)
    server.body = body if isinstance(body, str) else json.dumps(body)
    server.status = status
    server.delay = delay
    server.drip = drip
    server.received = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield HealServiceStub(server)
    finally:
        server.shutdown()
        server.server_close()


def closed_port_url() -> str:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        port = listener.getsockname()[1]
    return f"http://127.0.0.1:{port}"


@dataclass(slots=True)
class FrameworkRuntime:
    driver: object
    engine: SelfHealingEngine
    finder: SafeFinder
    actions: SafeActions
    sink: RecordingSink


@contextmanager
def managed_runtime(healing_config: HealingConfig, browser_name: str = "chrome") -> Iterator[FrameworkRuntime]:
    browser_session = BrowserSession(EnvironmentConfig(browser=browser_name, headless=True))
    try:
        driver = browser_session.start()
    except WebDriverException as exc:
        pytest.skip(f"WebDriver could not start for {browser_name}: {exc}")
    sink = RecordingSink()
    client = HttpHealServiceClient(
        healing_config.service_url,
        connect_timeout=healing_config.connect_timeout_seconds,
        call_timeout=healing_config.call_timeout_seconds,
    )
    engine = SelfHealingEngine(driver, healing_config, client=client, sink=sink)
    finder = SafeFinder(driver, healing_config, engine)
    runtime = FrameworkRuntime(
        driver=driver,
        engine=engine,
        finder=finder,
        actions=SafeActions(driver, finder),
        sink=sink,
    )
    try:
        yield runtime
    finally:
        driver.quit()


def open_html(runtime: FrameworkRuntime, html: str) -> None:
    runtime.driver.get("data:text/html;charset=utf-8," + quote(html))


def by_xpath(value: str) -> tuple[str, str]:
    return (By.XPATH, value)
