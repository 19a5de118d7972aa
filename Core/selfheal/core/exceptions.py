from __future__ import annotations

from selfheal.core.metadata import HealResult


class HealingError(RuntimeError):
    """Raised when selector healing fails."""


class SelectorValidationError(HealingError):
    """Raised when a healed selector cannot be used on the page."""


class HealingRejectedError(HealingError):
    """Raised by callers when the engine produced a non-accepting decision."""

    def __init__(self, locator: tuple[str, str], result: HealResult) -> None:
        self.locator = locator
        self.result = result
        detail = f" ({result.reason})" if result.reason else ""
        super().__init__(
            f"Healing rejected for {locator[1]!r}: {result.decision.value}"
            f" healed={result.healed_xpath!r} confidence={result.confidence}{detail}"
        )


class HealServiceError(HealingError):
    """Base class for failures talking to the heal scoring service."""

    kind = "error"

    def __init__(self, message: str, *, url: str, elapsed_ms: int = 0) -> None:
        self.url = url
        self.elapsed_ms = elapsed_ms
        super().__init__(f"{message} | url={url} | elapsedMs={elapsed_ms}")


class HealServiceHTTPError(HealServiceError):
    kind = "http_status"

    def __init__(self, *, url: str, status: int, elapsed_ms: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Heal service failed with status {status} | body={body}", url=url, elapsed_ms=elapsed_ms)


class HealServiceTimeoutError(HealServiceError):
    kind = "timeout"

    def __init__(self, *, url: str, elapsed_ms: int) -> None:
        super().__init__("Heal service timed out", url=url, elapsed_ms=elapsed_ms)


class HealServiceConnectionError(HealServiceError):
    kind = "connection"

    def __init__(self, *, url: str, elapsed_ms: int, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Heal service connection failed: {reason}", url=url, elapsed_ms=elapsed_ms)


class HealServiceDecodeError(HealServiceError):
    kind = "decode"

    def __init__(self, message: str, *, url: str = "", elapsed_ms: int = 0, body: str = "") -> None:
        self.body = body
        super().__init__(f"{message} | body={body}", url=url, elapsed_ms=elapsed_ms)
