"""Centralised version and naming information for the news feed simulator.

This module is the single source of truth for application version and
naming; the window title and QApplication metadata read from it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


APP_NAME: str = "NewsFeedSimulator"
APP_VERSION: str = "0.1.0"
APP_DESCRIPTION: str = "NewsFeedSimulator - a live news feed demo with asynchronous detail loading."
APP_ORGANIZATION: str = "NewsFeedSimulator"


@dataclass(frozen=True)
class VersionInfo:
    major: int
    minor: int
    patch: int

    def to_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(text: str) -> VersionInfo:
    """Parse a "MAJOR.MINOR.PATCH" string; missing parts default to 0."""
    parts = [int(p) for p in text.strip().split(".") if p]
    parts += [0] * (3 - len(parts))
    return VersionInfo(*parts[:3])


VERSION_INFO: VersionInfo = parse_version(APP_VERSION)
