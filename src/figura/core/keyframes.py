from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import numpy as np

from .rotation import Quat, Vec3, euler_zxy_to_quat, lerp_vec3, quat_slerp, quat_to_euler_zxy


TrackKind = Literal["quaternion", "position"]

# Bone that carries the position channel in recorded motion and in the DSL.
ROOT_BONE = "hip"


@dataclass(frozen=True)
class BoneValue:
    """Per-bone snapshot. Either field may be absent.

    rotation: `(z, x, y)` Euler degrees (see `rotation.euler_zxy_to_quat`).
    position: `(x, y, z)` centimeters. Only meaningful for the root bone.
    """

    rotation: Vec3 | None = None
    position: Vec3 | None = None

    def overlay(self, other: BoneValue) -> BoneValue:
        return BoneValue(
            rotation=other.rotation if other.rotation is not None else self.rotation,
            position=other.position if other.position is not None else self.position,
        )


@dataclass(frozen=True)
class Keyframe:
    time: float
    bones: dict[str, BoneValue] = field(default_factory=dict)


@dataclass(frozen=True)
class KeyframeSet:
    """Structured low-level DSL: a duration plus time-ordered keyframes."""

    duration: float
    keyframes: tuple[Keyframe, ...] = field(default_factory=tuple)

    @property
    def bone_names(self) -> list[str]:
        seen: dict[str, None] = {}
        for kf in self.keyframes:
            for name in kf.bones:
                seen.setdefault(name, None)
        return list(seen)


@dataclass(frozen=True)
class RecordedMotion:
    """A sampled motion: every tracked bone's local rotation per sample, plus the root position.

    rotations: float64 (n_samples, n_bones, 3) stored as `[z, x, y]` degrees
    root_positions: float64 (n_samples, 3) centimeters
    """

    name: str
    root: str
    bones: tuple[str, ...]
    times: np.ndarray  # float64 (n,)
    rotations: np.ndarray  # float64 (n, b, 3)
    root_positions: np.ndarray  # float64 (n, 3)

    def __post_init__(self) -> None:
        n = int(self.times.shape[0])
        if n == 0:
            raise ValueError("RecordedMotion needs at least one sample")
        if self.rotations.shape != (n, len(self.bones), 3):
            raise ValueError(f"rotations must have shape {(n, len(self.bones), 3)}, got {self.rotations.shape}")
        if self.root_positions.shape != (n, 3):
            raise ValueError(f"root_positions must have shape {(n, 3)}, got {self.root_positions.shape}")
        if self.root not in self.bones:
            raise ValueError(f"Root bone '{self.root}' is not a tracked bone")
        if n > 1 and not bool(np.all(np.diff(self.times) > 0.0)):
            raise ValueError("Sample times must be strictly increasing")

    @property
    def sample_count(self) -> int:
        return int(self.times.shape[0])

    @property
    def duration(self) -> float:
        return float(self.times[-1])

    @property
    def frame_time(self) -> float:
        if self.sample_count > 1:
            return float(self.times[1] - self.times[0])
        return 1.0 / 30.0

    def pose_at(self, t: float) -> dict[str, BoneValue]:
        """Sample every tracked bone at time `t` (clamped to the recorded range)."""

        i0, i1, alpha = _bracket(self.times, float(t))
        out: dict[str, BoneValue] = {}
        for b, name in enumerate(self.bones):
            if alpha == 0.0:
                rot = tuple(float(v) for v in self.rotations[i0, b])
            else:
                q = quat_slerp(
                    euler_zxy_to_quat(self.rotations[i0, b]),
                    euler_zxy_to_quat(self.rotations[i1, b]),
                    alpha,
                )
                rot = quat_to_euler_zxy(q)
            pos: Vec3 | None = None
            if name == self.root:
                p0 = tuple(float(v) for v in self.root_positions[i0])
                p1 = tuple(float(v) for v in self.root_positions[i1])
                pos = lerp_vec3(p0, p1, alpha)  # type: ignore[arg-type]
            out[name] = BoneValue(rotation=rot, position=pos)  # type: ignore[arg-type]
        return out


def _bracket(times: np.ndarray, t: float) -> tuple[int, int, float]:
    n = int(times.shape[0])
    if n == 1 or t <= float(times[0]):
        return 0, 0, 0.0
    if t >= float(times[-1]):
        return n - 1, n - 1, 0.0
    i1 = int(np.searchsorted(times, t, side="right"))
    i0 = i1 - 1
    t0, t1 = float(times[i0]), float(times[i1])
    if t1 - t0 < 1e-12:
        return i0, i0, 0.0
    return i0, i1, (t - t0) / (t1 - t0)


@dataclass(frozen=True)
class SampledBone:
    quaternion: Quat | None = None
    position: Vec3 | None = None

    @property
    def rotation(self) -> Vec3 | None:
        """The quaternion re-expressed as a `[z, x, y]` Euler triple."""
        if self.quaternion is None:
            return None
        return quat_to_euler_zxy(self.quaternion)


@dataclass(frozen=True)
class Track:
    bone: str
    kind: TrackKind
    times: np.ndarray  # float64 (n,)
    values: np.ndarray  # float64 (n,4) quaternions xyzw or (n,3) positions

    @property
    def name(self) -> str:
        return f"{self.bone}.{self.kind}"

    def sample(self, t: float) -> tuple[float, ...]:
        i0, i1, alpha = _bracket(self.times, float(t))
        if self.kind == "quaternion":
            if alpha == 0.0:
                q = self.values[i0]
            else:
                q = quat_slerp(self.values[i0], self.values[i1], alpha)
            return tuple(float(v) for v in q)
        p = self.values[i0] + alpha * (self.values[i1] - self.values[i0])
        return tuple(float(v) for v in p)


@dataclass(frozen=True)
class CompiledClip:
    """Playable track set. Replaced wholesale, never mutated."""

    duration: float
    tracks: tuple[Track, ...]
    name: str = "dsl"
    skeleton: object | None = None

    def track(self, bone: str, kind: TrackKind) -> Track | None:
        for tr in self.tracks:
            if tr.bone == bone and tr.kind == kind:
                return tr
        return None

    def bones(self) -> list[str]:
        seen: dict[str, None] = {}
        for tr in self.tracks:
            seen.setdefault(tr.bone, None)
        return list(seen)

    def sample(self, t: float) -> dict[str, SampledBone]:
        out: dict[str, SampledBone] = {}
        for tr in self.tracks:
            prev = out.get(tr.bone, SampledBone())
            value = tr.sample(t)
            if tr.kind == "quaternion":
                out[tr.bone] = SampledBone(quaternion=value, position=prev.position)  # type: ignore[arg-type]
            else:
                out[tr.bone] = SampledBone(quaternion=prev.quaternion, position=value)  # type: ignore[arg-type]
        return out


def round_time(t: float) -> float:
    """Round to the 0.1 ms bucket used for every compiled or composited time (half-up)."""
    return float(np.floor(float(t) * 10000.0 + 0.5) / 10000.0)
