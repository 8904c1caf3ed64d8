"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from brickrun.registry import BrickRegistry
from tests.unit.helpers import RecordingEffect, build_registry


@pytest.fixture
def recorder() -> RecordingEffect:
    """Effect brick that records the configs it receives."""
    return RecordingEffect()


@pytest.fixture
def registry(recorder: RecordingEffect) -> BrickRegistry:
    """Registry with built-in bricks, test bricks and the recorder."""
    return build_registry(recorder)
