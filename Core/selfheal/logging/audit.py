from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from selfheal.core.metadata import HealEvent
from selfheal.logging.sinks import HealEventSink


class HealingAuditLogger(HealEventSink):
    """Persists heal events as JSON lines for later review."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.events_path = self.root / "heal_events.jsonl"

    def emit(self, event: HealEvent) -> None:
        payload = {
            "stage": event.stage,
            "message": event.message,
            "data": event.data,
            "timestamp": event.timestamp,
        }
        with self.events_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, default=str) + "\n")

    def read_events(self) -> list[dict[str, Any]]:
        if not self.events_path.exists():
            return []
        with self.events_path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]

    def decisions(self) -> list[dict[str, Any]]:
        return [event["data"] for event in self.read_events() if event["stage"] == "decision"]
