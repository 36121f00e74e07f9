from __future__ import annotations

import numpy as np
import pytest

from figura.core.codec import generate, parse
from figura.core.keyframes import RecordedMotion
from figura.core.library import ClipLibrary
from figura.core.retarget import BONE_MAP


DSL_BONES: tuple[str, ...] = tuple(BONE_MAP.values())

PIROUETTE_DURATION = 4.9
PIROUETTE_SAMPLES = 148  # 30 fps over 4.9 s, both ends included


def make_pirouette(name: str = "pirouette") -> RecordedMotion:
    """Deterministic stand-in for the pirouette recording: smooth, away from gimbal lock."""

    times = np.linspace(0.0, PIROUETTE_DURATION, PIROUETTE_SAMPLES)
    n, b = times.shape[0], len(DSL_BONES)
    phase = np.arange(b, dtype=np.float64)[np.newaxis, :]
    t = times[:, np.newaxis]

    rotations = np.zeros((n, b, 3), dtype=np.float64)
    rotations[:, :, 0] = 25.0 * np.sin(1.3 * t + phase)
    rotations[:, :, 1] = 15.0 * np.sin(0.7 * t + 0.5 * phase)
    rotations[:, :, 2] = 35.0 * np.cos(0.9 * t + 0.25 * phase)

    root_positions = np.stack(
        [5.0 * np.sin(times), 90.0 + 3.0 * np.sin(2.0 * times), 2.0 * times],
        axis=1,
    )
    return RecordedMotion(
        name=name,
        root="hip",
        bones=DSL_BONES,
        times=times,
        rotations=rotations,
        root_positions=root_positions,
    )


@pytest.fixture
def pirouette() -> RecordedMotion:
    return make_pirouette()


@pytest.fixture
def pirouette_text(pirouette: RecordedMotion) -> str:
    return generate(pirouette)


@pytest.fixture
def library(pirouette_text: str) -> ClipLibrary:
    lib = ClipLibrary()
    lib.register("pirouette", parse(pirouette_text))
    return lib
