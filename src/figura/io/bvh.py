from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ..core.keyframes import RecordedMotion
from ..core.retarget import SkeletonBone, SkeletonDescriptor
from ..core.rotation import Vec3, axis_angle_matrix, matrix_to_euler_zxy


_ROTATION_CHANNELS = {"Xrotation": "X", "Yrotation": "Y", "Zrotation": "Z"}
_POSITION_CHANNELS = {"Xposition": 0, "Yposition": 1, "Zposition": 2}


@dataclass(frozen=True)
class BvhJoint:
    name: str
    parent: str | None
    offset: Vec3
    channels: tuple[str, ...]


@dataclass(frozen=True)
class BvhData:
    """A BVH file as a recorded motion plus its rest skeleton."""

    motion: RecordedMotion
    skeleton: SkeletonDescriptor
    joints: tuple[BvhJoint, ...]


class _Tokens:
    def __init__(self, text: str) -> None:
        self._items = text.split()
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._items)

    def next(self) -> str:
        if self._pos >= len(self._items):
            raise ValueError("Unexpected end of BVH data")
        tok = self._items[self._pos]
        self._pos += 1
        return tok

    def expect(self, word: str) -> None:
        tok = self.next()
        if tok != word:
            raise ValueError(f"Expected '{word}' in BVH data, got '{tok}'")

    def next_float(self) -> float:
        tok = self.next()
        try:
            return float(tok)
        except ValueError as e:
            raise ValueError(f"Expected a number in BVH data, got '{tok}'") from e

    def next_int(self) -> int:
        tok = self.next()
        try:
            return int(tok)
        except ValueError as e:
            raise ValueError(f"Expected an integer in BVH data, got '{tok}'") from e

    def remaining(self) -> list[str]:
        rest = self._items[self._pos :]
        self._pos = len(self._items)
        return rest


def _parse_joint(tokens: _Tokens, name: str, parent: str | None, joints: list[BvhJoint | None]) -> None:
    slot = len(joints)
    joints.append(None)
    offset: Vec3 = (0.0, 0.0, 0.0)
    channels: tuple[str, ...] = ()

    tokens.expect("{")
    while True:
        tok = tokens.next()
        if tok == "OFFSET":
            offset = (tokens.next_float(), tokens.next_float(), tokens.next_float())
        elif tok == "CHANNELS":
            n = tokens.next_int()
            channels = tuple(tokens.next() for _ in range(n))
            unknown = [c for c in channels if c not in _ROTATION_CHANNELS and c not in _POSITION_CHANNELS]
            if unknown:
                raise ValueError(f"Joint '{name}' has unsupported channels: {unknown}")
        elif tok == "JOINT":
            _parse_joint(tokens, tokens.next(), name, joints)
        elif tok == "End":
            tokens.expect("Site")
            tokens.expect("{")
            tokens.expect("OFFSET")
            for _ in range(3):
                tokens.next_float()
            tokens.expect("}")
        elif tok == "}":
            break
        else:
            raise ValueError(f"Unexpected token '{tok}' in joint '{name}'")

    joints[slot] = BvhJoint(name=name, parent=parent, offset=offset, channels=channels)


def parse_bvh(text: str, name: str = "bvh") -> BvhData:
    """Parse BVH text.

    Rotation channels are composed in the order they are listed and stored as
    `[z, x, y]` Euler degrees. The root position comes from its position
    channels (its OFFSET when it has none).
    """

    tokens = _Tokens(text)
    tokens.expect("HIERARCHY")
    tokens.expect("ROOT")
    joints_slots: list[BvhJoint | None] = []
    _parse_joint(tokens, tokens.next(), None, joints_slots)
    joints = tuple(j for j in joints_slots if j is not None)

    names = [j.name for j in joints]
    if len(set(names)) != len(names):
        raise ValueError("BVH joint names must be unique")

    tokens.expect("MOTION")
    tokens.expect("Frames:")
    n_frames = tokens.next_int()
    tokens.expect("Frame")
    tokens.expect("Time:")
    frame_time = tokens.next_float()
    if n_frames <= 0:
        raise ValueError("BVH motion has no frames")
    if not np.isfinite(frame_time) or frame_time <= 0.0:
        raise ValueError("BVH frame time must be a finite positive number")

    total_channels = sum(len(j.channels) for j in joints)
    raw = tokens.remaining()
    if len(raw) < n_frames * total_channels:
        raise ValueError(
            f"BVH motion declares {n_frames} frames of {total_channels} channels but has {len(raw)} values"
        )
    try:
        data = np.asarray([float(v) for v in raw[: n_frames * total_channels]], dtype=np.float64)
    except ValueError as e:
        raise ValueError("BVH motion data contains a non-numeric value") from e
    data = data.reshape(n_frames, total_channels)

    rotations = np.zeros((n_frames, len(joints), 3), dtype=np.float64)
    root = joints[0]
    root_positions = np.tile(np.asarray(root.offset, dtype=np.float64), (n_frames, 1))

    col = 0
    for b, joint in enumerate(joints):
        cols = range(col, col + len(joint.channels))
        col += len(joint.channels)

        rot_cols = [(c, _ROTATION_CHANNELS[ch]) for c, ch in zip(cols, joint.channels) if ch in _ROTATION_CHANNELS]
        for f in range(n_frames):
            m = np.eye(3, dtype=np.float64)
            for c, axis in rot_cols:
                m = m @ axis_angle_matrix(axis, data[f, c])  # type: ignore[arg-type]
            rotations[f, b] = matrix_to_euler_zxy(m)

        if b == 0:
            for c, ch in zip(cols, joint.channels):
                if ch in _POSITION_CHANNELS:
                    root_positions[:, _POSITION_CHANNELS[ch]] = data[:, c]

    motion = RecordedMotion(
        name=name,
        root=root.name,
        bones=tuple(names),
        times=np.arange(n_frames, dtype=np.float64) * frame_time,
        rotations=rotations,
        root_positions=root_positions,
    )
    skeleton = SkeletonDescriptor(
        bones=tuple(SkeletonBone(name=j.name, parent=j.parent, rest_position=j.offset) for j in joints)
    )
    return BvhData(motion=motion, skeleton=skeleton, joints=joints)


def load_bvh(path: str | Path, name: str | None = None) -> BvhData:
    """Load a `.bvh` file. The motion is named after the file stem unless `name` is given."""

    p = Path(path)
    return parse_bvh(p.read_text(encoding="utf-8"), name=name or p.stem)
