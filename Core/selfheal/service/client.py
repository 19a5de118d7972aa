from __future__ import annotations

import http.client
import logging
import os
from abc import ABC, abstractmethod
from functools import partial
from time import monotonic
from urllib import error, request

from selfheal.config.schema import HealingConfig
from selfheal.core.exceptions import (
    HealServiceConnectionError,
    HealServiceHTTPError,
    HealServiceTimeoutError,
)
from selfheal.service.dto import HealRequest, HealResponse
from selfheal.service.parser import decode_heal_response, truncate

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192
MIN_SOCKET_TIMEOUT = 0.01


class HealServiceClient(ABC):
    """Transport-neutral interface to the external scoring service."""

    service_name = "unknown"

    @abstractmethod
    def heal(self, heal_request: HealRequest) -> HealResponse | None:
        raise NotImplementedError


class _CallBudget:
    """Wall-clock budget shared by every socket operation of one call."""

    def __init__(self, seconds: float) -> None:
        self.started = monotonic()
        self.deadline = self.started + seconds
        self.sock = None

    def remaining(self) -> float:
        return self.deadline - monotonic()

    def attach(self, sock) -> None:
        self.sock = sock
        self.arm()

    def arm(self) -> None:
        remaining = self.remaining()
        if remaining <= 0:
            raise TimeoutError("heal service call budget exhausted")
        if self.sock is not None:
            self.sock.settimeout(max(remaining, MIN_SOCKET_TIMEOUT))

    def elapsed_ms(self) -> int:
        return int((monotonic() - self.started) * 1000)


class _BoundedHTTPConnection(http.client.HTTPConnection):
    # ``timeout`` bounds connect; afterwards the socket follows the call budget.
    def __init__(self, *args, budget: _CallBudget, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._budget = budget

    def connect(self) -> None:
        super().connect()
        self._budget.attach(self.sock)


class _BoundedHTTPSConnection(http.client.HTTPSConnection):
    def __init__(self, *args, budget: _CallBudget, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._budget = budget

    def connect(self) -> None:
        super().connect()
        self._budget.attach(self.sock)


class _BoundedHTTPHandler(request.HTTPHandler):
    def __init__(self, budget: _CallBudget) -> None:
        super().__init__()
        self._budget = budget

    def http_open(self, req):
        return self.do_open(partial(_BoundedHTTPConnection, budget=self._budget), req)


class _BoundedHTTPSHandler(request.HTTPSHandler):
    def __init__(self, budget: _CallBudget) -> None:
        super().__init__()
        self._budget = budget

    def https_open(self, req):
        return self.do_open(
            partial(_BoundedHTTPSConnection, budget=self._budget),
            req,
            context=self._context,
        )


class HttpHealServiceClient(HealServiceClient):
    service_name = "http"

    def __init__(
        self,
        service_url: str,
        connect_timeout: float = 5.0,
        call_timeout: float = 20.0,
    ) -> None:
        self.service_url = service_url.rstrip("/")
        self.endpoint = f"{self.service_url}/heal"
        self.connect_timeout = connect_timeout
        self.call_timeout = max(call_timeout, connect_timeout)

    def heal(self, heal_request: HealRequest) -> HealResponse | None:
        encoded = heal_request.to_json().encode("utf-8")
        req = request.Request(
            self.endpoint,
            data=encoded,
            headers={"Content-Type": "application/json; charset=utf-8", "Accept": "application/json"},
            method="POST",
        )
        logger.info(
            "Calling heal service url=%s hint=%r tag=%r candidates=%d",
            self.endpoint,
            heal_request.old.text,
            heal_request.old.tag,
            len(heal_request.candidates),
        )
        budget = _CallBudget(self.call_timeout)
        opener = request.build_opener(_BoundedHTTPHandler(budget), _BoundedHTTPSHandler(budget))
        try:
            with opener.open(req, timeout=self.connect_timeout) as response:
                raw = _read_body(response, budget)
        except error.HTTPError as exc:
            detail = _read_error_body(exc, budget)
            raise HealServiceHTTPError(
                url=self.endpoint,
                status=exc.code,
                elapsed_ms=budget.elapsed_ms(),
                body=truncate(detail),
            ) from exc
        except error.URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise HealServiceTimeoutError(url=self.endpoint, elapsed_ms=budget.elapsed_ms()) from exc
            raise HealServiceConnectionError(
                url=self.endpoint,
                elapsed_ms=budget.elapsed_ms(),
                reason=str(exc.reason),
            ) from exc
        except TimeoutError as exc:
            raise HealServiceTimeoutError(url=self.endpoint, elapsed_ms=budget.elapsed_ms()) from exc
        except (http.client.HTTPException, OSError) as exc:
            raise HealServiceConnectionError(
                url=self.endpoint,
                elapsed_ms=budget.elapsed_ms(),
                reason=f"{type(exc).__name__}: {exc}",
            ) from exc

        elapsed_ms = budget.elapsed_ms()
        decoded = decode_heal_response(raw, url=self.endpoint, elapsed_ms=elapsed_ms)
        logger.info(
            "Heal service returned in %d ms decision=%s confidence=%s healed=%s",
            elapsed_ms,
            decoded.decision if decoded else None,
            decoded.confidence if decoded else None,
            decoded.healed_xpath if decoded else None,
        )
        return decoded


def create_heal_service_client(config: HealingConfig) -> HealServiceClient:
    service_url = os.getenv("HEAL_SERVICE_URL") or config.service_url
    return HttpHealServiceClient(
        service_url,
        connect_timeout=config.connect_timeout_seconds,
        call_timeout=config.call_timeout_seconds,
    )


def _read_body(response, budget: _CallBudget) -> str:
    """Reads the body chunk by chunk, re-arming the socket with what is left of the budget."""

    chunks: list[bytes] = []
    while True:
        budget.arm()
        chunk = response.read1(READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


def _read_error_body(exc: error.HTTPError, budget: _CallBudget) -> str:
    try:
        budget.arm()
        return exc.read().decode("utf-8", errors="replace")
    except (OSError, http.client.HTTPException):
        return ""
