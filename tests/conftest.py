"""Pytest configuration - headless Pygame and shared galaxy fixtures."""
from __future__ import annotations

import os
from pathlib import Path

# Must be set before pygame is first imported.
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pytest

from galaxy import ParameterSet


class RecordingSink:
    """Scene sink that records every call and enforces a single attachment."""

    def __init__(self):
        self.created = []
        self.attached = []
        self.attach_calls = 0
        self.detach_calls = 0
        self.max_attached = 0

    def create_drawable(self, buffer, point_size, spin=0.0):
        drawable = FakeDrawable(buffer, point_size, spin)
        self.created.append(drawable)
        return drawable

    def attach(self, drawable):
        self.attach_calls += 1
        self.attached.append(drawable)
        self.max_attached = max(self.max_attached, len(self.attached))

    def detach(self, drawable):
        self.detach_calls += 1
        if drawable is None:
            return
        if drawable not in self.attached:
            raise KeyError("unknown drawable")
        self.attached.remove(drawable)


class FakeDrawable:
    def __init__(self, buffer, point_size, spin=0.0):
        self.buffer = buffer
        self.point_size = point_size
        self.spin = spin
        self.disposed = False

    def dispose(self):
        self.buffer = None
        self.disposed = True


# Per particle: radius, X mag, X sign, Y mag, Y sign, Z mag, Z sign
SCENARIO_SEQUENCE = [0.25, 0.1, 0.0, 0.1, 1.0, 0.1, 0.0]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def scenario_params():
    return ParameterSet(
        count=4,
        size=0.01,
        radius=10.0,
        branches=2,
        spin=0.0,
        random_power=1.0,
        center_flatness=1.0,
        inside_color=(1.0, 0.0, 0.0),
        outside_color=(0.0, 0.0, 1.0),
        add_burst=False,
    )


@pytest.fixture
def small_params():
    return ParameterSet(count=500, radius=5.0, branches=3, spin=1.0, random_power=2.0)


@pytest.fixture
def project_root():
    """Return path to project root."""
    return Path(__file__).resolve().parents[1]
