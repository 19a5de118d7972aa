from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from selfheal.core.metadata import HealEvent

_WARNING_STAGES = {"decision"}


class HealEventSink(ABC):
    """Receives the structured records a resolution attempt produces."""

    @abstractmethod
    def emit(self, event: HealEvent) -> None:
        raise NotImplementedError


class LoggingEventSink(HealEventSink):
    """Forwards heal events to the standard logging tree."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("selfheal.events")

    def emit(self, event: HealEvent) -> None:
        level = logging.INFO
        if event.stage in _WARNING_STAGES and not event.data.get("accepted", True):
            level = logging.WARNING
        self.logger.log(level, "HEAL[%s] %s %s", event.stage, event.message, event.data)
