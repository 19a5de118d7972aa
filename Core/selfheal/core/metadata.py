from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from selenium.webdriver.common.by import By


class ActionKind(str, Enum):
    """The kind of UI action that was in flight when a locator failed."""

    CLICK = "click"
    TEXT_ENTRY = "text_entry"
    CLEAR = "clear"
    HOVER = "hover"
    READ_TEXT = "read_text"
    OTHER = "other"

    @property
    def is_text_entry(self) -> bool:
        return self in (ActionKind.TEXT_ENTRY, ActionKind.CLEAR)

    @property
    def is_click(self) -> bool:
        return self is ActionKind.CLICK


class HealDecision(str, Enum):
    AUTO_HEAL_DOM_FALLBACK = "AUTO_HEAL_DOM_FALLBACK"
    AUTO_HEAL_VERIFIED_UNIQUE = "AUTO_HEAL_VERIFIED_UNIQUE"
    AUTO_HEAL_CONFIDENT = "AUTO_HEAL_CONFIDENT"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    MANUAL_REVIEW_API_NULL = "MANUAL_REVIEW_API_NULL"
    MANUAL_REVIEW_NO_XPATH = "MANUAL_REVIEW_NO_XPATH"
    MANUAL_REVIEW_API_ERROR = "MANUAL_REVIEW_API_ERROR"
    MANUAL_REVIEW_NO_INTENT_ON_PAGE = "MANUAL_REVIEW_NO_INTENT_ON_PAGE"
    REJECT_INTENT_MISMATCH = "REJECT_INTENT_MISMATCH"
    REJECT_AD_IFRAME = "REJECT_AD_IFRAME"

    @property
    def is_accepted(self) -> bool:
        return self.value.startswith("AUTO_HEAL")


@dataclass(slots=True)
class HealResult:
    """Outcome of one resolution attempt, the only value handed back to callers."""

    decision: HealDecision
    healed_locator: tuple[str, str] | None = None
    healed_xpath: str = ""
    confidence: float = 0.0
    match_count: int = 0
    sanity_passed: bool = False
    reason: str = ""

    @classmethod
    def for_xpath(cls, xpath: str, confidence: float, decision: HealDecision) -> HealResult:
        return cls(
            decision=decision,
            healed_locator=(By.XPATH, xpath),
            healed_xpath=xpath,
            confidence=confidence,
        )

    @property
    def accepted(self) -> bool:
        return self.decision.is_accepted

    def to_payload(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "healed_xpath": self.healed_xpath,
            "confidence": self.confidence,
            "match_count": self.match_count,
            "sanity_passed": self.sanity_passed,
            "reason": self.reason,
        }


@dataclass(slots=True)
class HealEvent:
    stage: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
