from __future__ import annotations

import logging

from selenium.common.exceptions import InvalidSelectorException, WebDriverException

from selfheal.config.schema import HealingConfig
from selfheal.core.exceptions import HealingError, HealingRejectedError, SelectorValidationError
from selfheal.core.metadata import ActionKind, HealResult
from selfheal.utils.wait import wait_until

logger = logging.getLogger(__name__)


class SafeFinder:
    """Element lookup that falls back to the healing engine when a locator stops matching."""

    def __init__(self, driver, config: HealingConfig, engine, poll_interval: float = 0.2) -> None:
        self.driver = driver
        self.config = config
        self.engine = engine
        self.poll_interval = poll_interval
        self.last_result: HealResult | None = None

    def find(self, locator: tuple[str, str], action: ActionKind = ActionKind.OTHER, timeout: float | None = None):
        duration = self.config.wait_seconds if timeout is None else timeout
        element = self._first_match(locator, duration)
        if element is not None:
            return element

        logger.warning("Locator %s did not match within %ss, invoking healer", locator[1], duration)
        result = self.engine.heal(locator, action)
        self.last_result = result
        if result is None:
            raise HealingError(f"Element not found and healing not possible for locator: {locator[1]!r}")
        if not result.accepted:
            raise HealingRejectedError(locator, result)

        logger.info(
            "Accepted healed locator old=%s healed=%s decision=%s confidence=%s",
            locator[1],
            result.healed_xpath,
            result.decision.value,
            result.confidence,
        )
        healed = self._first_match(result.healed_locator, duration)
        if healed is None:
            raise SelectorValidationError(f"Healed locator {result.healed_xpath!r} did not resolve to an element")
        return healed

    def _first_match(self, locator: tuple[str, str], timeout: float):
        by, value = locator

        def lookup():
            try:
                matches = self.driver.find_elements(by, value)
            except InvalidSelectorException:
                return None
            except WebDriverException as exc:
                logger.debug("Lookup failed for %s: %s", value, exc.msg or exc)
                return None
            return matches[0] if matches else None

        return wait_until(lookup, timeout, self.poll_interval)
