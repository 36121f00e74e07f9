from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping

from .choreography import DEFAULT_BPM
from .codec import DEFAULT_FRAME_TIME
from .keyframes import ROOT_BONE


@dataclass(frozen=True)
class CompilerSettings:
    """Knobs shared by the session, the CLI and the HTTP server.

    source_interval: sampling interval used when a recorded motion is turned
    into low-level text before registration. None keeps its native samples.
    """

    frame_time: float = DEFAULT_FRAME_TIME
    default_bpm: float = DEFAULT_BPM
    source_interval: float | None = DEFAULT_FRAME_TIME
    root_bone: str = ROOT_BONE
    sources_dir: Path | None = None


def _positive_float(environ: Mapping[str, str], key: str) -> float | None:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        v = float(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be a number, got {raw!r}") from e
    if not math.isfinite(v) or v <= 0.0:
        raise ValueError(f"{key} must be a finite positive number, got {raw!r}")
    return v


def load_settings(environ: Mapping[str, str] | None = None) -> CompilerSettings:
    """Build settings from `FIGURA_*` environment variables (defaults for unset ones)."""

    env = os.environ if environ is None else environ
    settings = CompilerSettings()

    frame_time = _positive_float(env, "FIGURA_FRAME_TIME")
    if frame_time is not None:
        settings = replace(settings, frame_time=frame_time)

    interval_raw = env.get("FIGURA_SOURCE_INTERVAL", "").strip()
    if interval_raw.lower() == "native":
        settings = replace(settings, source_interval=None)
    else:
        interval = _positive_float(env, "FIGURA_SOURCE_INTERVAL")
        if interval is not None:
            settings = replace(settings, source_interval=interval)

    root = env.get("FIGURA_ROOT_BONE")
    if root is not None:
        root = root.strip()
        if not root or len(root.split()) != 1:
            raise ValueError(f"FIGURA_ROOT_BONE must be a single bone name, got {root!r}")
        settings = replace(settings, root_bone=root)

    sources_dir = env.get("FIGURA_SOURCES_DIR", "").strip()
    if sources_dir:
        p = Path(sources_dir)
        if not p.is_dir():
            raise ValueError(f"FIGURA_SOURCES_DIR is not a directory: {sources_dir}")
        settings = replace(settings, sources_dir=p)

    return settings
