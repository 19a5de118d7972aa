from __future__ import annotations

import logging

from selenium.webdriver.common.action_chains import ActionChains

from selfheal.core.metadata import ActionKind

logger = logging.getLogger(__name__)


class SafeActions:
    """High-level browser actions routed through the healing finder."""

    def __init__(self, driver, finder) -> None:
        self.driver = driver
        self.finder = finder

    def click(self, locator: tuple[str, str]) -> None:
        self.finder.find(locator, ActionKind.CLICK).click()
        logger.info("Clicked %s", locator[1])

    def type(self, locator: tuple[str, str], value: str, clear_first: bool = True) -> None:
        element = self.finder.find(locator, ActionKind.TEXT_ENTRY)
        if clear_first:
            element.clear()
        element.send_keys(value)
        logger.info("Typed into %s", locator[1])

    def clear(self, locator: tuple[str, str]) -> None:
        self.finder.find(locator, ActionKind.CLEAR).clear()

    def hover(self, locator: tuple[str, str]) -> None:
        element = self.finder.find(locator, ActionKind.HOVER)
        ActionChains(self.driver).move_to_element(element).perform()

    def get_text(self, locator: tuple[str, str]) -> str:
        return self.finder.find(locator, ActionKind.READ_TEXT).text
