"""
Build information shown in every page footer and as the OpenAPI version.

The release number comes from the repo root VERSION file; the commit and build
time are stamped into the environment by the image build (BUILD_COMMIT,
BUILD_TIME) and default to a development marker.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

VERSION_FILE = Path(__file__).resolve().parent.parent / "VERSION"
FALLBACK_VERSION = "0.0.0"
SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$")


def is_semver(s: str) -> bool:
    return bool(s and SEMVER_PATTERN.match(s.strip()))


def read_version(path: Path = VERSION_FILE) -> str:
    """First line of ``path`` if it is a semantic version, else the fallback."""
    try:
        lines = path.read_text(encoding="utf-8").strip().splitlines()
    except OSError:
        return FALLBACK_VERSION
    candidate = lines[0].strip() if lines else ""
    return candidate if is_semver(candidate) else FALLBACK_VERSION


@dataclass(frozen=True)
class BuildInfo:
    version: str
    commit: str
    built_at: str


@lru_cache
def build_info() -> BuildInfo:
    commit = os.getenv("BUILD_COMMIT", "").strip()
    return BuildInfo(
        version=read_version(),
        commit=commit[:7] or "dev",
        built_at=os.getenv("BUILD_TIME", "").strip(),
    )
