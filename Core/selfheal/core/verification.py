from __future__ import annotations

import logging

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from selfheal.core.metadata import ActionKind

logger = logging.getLogger(__name__)

AD_IFRAME_MARKERS: tuple[str, ...] = (
    "google_ads",
    "googleads",
    "doubleclick",
    "googlesyndication",
    "adsbygoogle",
    "aswift",
    "adplus",
    "ad.plus",
    "gpt",
    "safeframe",
    "criteo",
    "openx",
    "taboola",
    "outbrain",
    "fixedban",
)

BLOB_ATTRIBUTES = ("placeholder", "aria-label", "name", "id", "data-testid", "data-test", "data-qa", "type")
TEXT_ENTRY_TAGS = {"input", "textarea"}
CLICK_TAGS = {"button", "a"}
CLICKABLE_INPUT_TYPES = {"submit", "button"}


def is_ad_like_xpath(xpath: str | None) -> bool:
    if not xpath or not xpath.strip():
        return True
    lowered = xpath.lower()
    return any(marker in lowered for marker in AD_IFRAME_MARKERS)


class PageVerifier:
    """Read-only DOM checks used to confirm or refuse a healed locator."""

    def __init__(self, driver) -> None:
        self.driver = driver

    def find_all(self, xpath: str) -> list:
        try:
            return list(self.driver.find_elements(By.XPATH, xpath))
        except WebDriverException as exc:
            logger.debug("XPath lookup failed xpath=%s: %s", xpath, exc.msg or exc)
            return []

    def element_blob(self, xpath: str) -> str | None:
        """Text plus identifying attributes of the first match, ``None`` when nothing matches."""

        matches = self.find_all(xpath)
        if not matches:
            return None
        element = matches[0]
        try:
            parts = [_safe(element.text)]
            parts.extend(_safe(element.get_attribute(name)) for name in BLOB_ATTRIBUTES)
        except WebDriverException as exc:
            logger.debug("Could not read healed element xpath=%s: %s", xpath, exc.msg or exc)
            return None
        return " ".join(part for part in parts if part).lower()

    def is_displayed(self, element) -> bool:
        try:
            return bool(element.is_displayed())
        except WebDriverException:
            return False

    def is_allowed_for_action(self, element, action: ActionKind) -> bool:
        try:
            tag = _safe(element.tag_name).lower()
            role = _safe(element.get_attribute("role")).lower()
            editable = _safe(element.get_attribute("contenteditable")).lower()
            input_type = _safe(element.get_attribute("type")).lower()
        except WebDriverException:
            return False
        if action.is_text_entry:
            return tag in TEXT_ENTRY_TAGS or role == "textbox" or editable == "true"
        if action.is_click:
            if tag in CLICK_TAGS or role == "button":
                return True
            return tag == "input" and input_type in CLICKABLE_INPUT_TYPES
        return True

    def is_ad_like_element(self, element) -> bool:
        try:
            if _safe(element.tag_name).lower() == "iframe":
                return True
            markers = " ".join(
                _safe(element.get_attribute(name)) for name in ("id", "class", "src", "name")
            ).lower()
        except WebDriverException:
            return True
        return any(marker in markers for marker in AD_IFRAME_MARKERS)


def _safe(value) -> str:
    return "" if value is None else str(value).strip()
