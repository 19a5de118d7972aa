from __future__ import annotations

import json

from selfheal.core.exceptions import HealServiceDecodeError
from selfheal.service.dto import HealResponse

BODY_PREVIEW_LIMIT = 800


def truncate(value: str | None, limit: int = BODY_PREVIEW_LIMIT) -> str:
    if not value:
        return ""
    return value if len(value) <= limit else value[:limit] + "...(truncated)"


def decode_heal_response(raw: str, *, url: str = "", elapsed_ms: int = 0) -> HealResponse | None:
    body = raw.strip()
    if not body:
        raise HealServiceDecodeError("Heal service returned an empty body", url=url, elapsed_ms=elapsed_ms)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise HealServiceDecodeError(
            f"Heal service returned invalid JSON: {exc.msg}",
            url=url,
            elapsed_ms=elapsed_ms,
            body=truncate(body),
        ) from exc
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise HealServiceDecodeError(
            f"Heal service returned {type(payload).__name__} instead of an object",
            url=url,
            elapsed_ms=elapsed_ms,
            body=truncate(body),
        )
    return HealResponse.model_validate(payload)
