from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from selfheal.core.descriptor import LocatorDescriptor


class Candidate(BaseModel):
    """One visible, interactive element captured from the live page."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    xpath: str
    visible_text: str = Field(default="", alias="text")
    tag: str = ""
    position_index: int = Field(default=0, alias="idx")
    aria_label: str = Field(default="", alias="ariaLabel")
    id: str = ""
    name: str = ""
    class_name: str = Field(default="", alias="className")
    placeholder: str = ""
    type: str = ""
    value: str = ""
    test_id: str = Field(default="", alias="dataTestId")

    @field_validator(
        "visible_text",
        "tag",
        "aria_label",
        "id",
        "name",
        "class_name",
        "placeholder",
        "type",
        "value",
        "test_id",
        mode="before",
    )
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def attribute_blob(self) -> str:
        parts = (
            self.visible_text,
            self.aria_label,
            self.placeholder,
            self.name,
            self.id,
            self.test_id,
            self.xpath,
        )
        return " ".join(part for part in parts if part).lower()


class OldElement(BaseModel):
    text: str = ""
    tag: str = ""
    xpath: str = ""
    intent: str = ""
    idx: int = 0


class HealRequest(BaseModel):
    old: OldElement
    candidates: list[Candidate] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class HealResponse(BaseModel):
    """Suggestion returned by the scoring service.

    Fields that are absent or of the wrong type are kept as ``None`` so that a
    broken response can never look like a confident one.
    """

    model_config = ConfigDict(extra="ignore")

    healed_xpath: str | None = None
    confidence: float | None = None
    decision: str | None = None

    @field_validator("healed_xpath", "decision", mode="before")
    @classmethod
    def strings_only(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @field_validator("confidence", mode="before")
    @classmethod
    def finite_number_only(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        number = float(value)
        return number if math.isfinite(number) else None

    @property
    def has_suggestion(self) -> bool:
        return bool(self.healed_xpath and self.healed_xpath.strip())

    @property
    def has_confidence(self) -> bool:
        return self.confidence is not None

    @property
    def service_decision(self) -> str:
        return (self.decision or "").strip().lower()


def build_heal_request(
    descriptor: LocatorDescriptor,
    candidates: list[Candidate],
    *,
    text: str | None = None,
    tag: str | None = None,
) -> HealRequest:
    """Builds a fresh request; requests are never reused across attempts."""

    old = OldElement(
        text=(descriptor.best_text_hint if text is None else text).strip(),
        tag=(descriptor.inferred_tag if tag is None else tag).strip(),
        xpath=descriptor.raw_expression,
        intent=descriptor.intent_token,
        idx=0,
    )
    return HealRequest(old=old, candidates=list(candidates))
