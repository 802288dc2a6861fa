"""Shared test fixtures."""

import asyncio
import time

import pytest

EVERY_SECOND = "* * * * * *"


@pytest.fixture
def every_second() -> str:
    return EVERY_SECOND


@pytest.fixture
async def aligned() -> None:
    """Sleep until the middle of a wall-clock second.

    An every-second schedule started here fires at +0.5s, +1.5s, +2.5s, ...
    so a test that waits N whole seconds sees exactly N firings.
    """
    await asyncio.sleep((0.5 - time.time() % 1) % 1)
