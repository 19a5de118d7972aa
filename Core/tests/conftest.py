from __future__ import annotations

import pytest

from selfheal.config.schema import HealingConfig


@pytest.fixture()
def healing_config():
    return HealingConfig(service_url="http://127.0.0.1:9", wait_seconds=0)
