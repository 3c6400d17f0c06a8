"""Shared fixtures."""

import pytest
from loguru import logger


@pytest.fixture
def log_messages():
    """Collect loguru records (``"LEVEL: message"``) emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda m: messages.append(f"{m.record['level'].name}: {m.record['message']}"),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
