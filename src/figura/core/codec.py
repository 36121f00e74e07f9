from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

import numpy as np

from .keyframes import BoneValue, CompiledClip, Keyframe, KeyframeSet, RecordedMotion, Track, round_time
from .rotation import Vec3, euler_zxy_to_quat


log = logging.getLogger(__name__)

DEFAULT_FRAME_TIME = 1.0 / 30.0

_MARKER_RE = re.compile(r"^@\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


@dataclass(frozen=True)
class LineMarker:
    """A time marker found on a given (0-based) line, for editor scroll sync."""

    time: float
    line: int


def _parse_float(token: str) -> float | None:
    try:
        v = float(token)
    except ValueError:
        return None
    if not math.isfinite(v):
        return None
    return v


def _parse_triple(tokens: list[str], start: int) -> Vec3 | None:
    if start + 3 > len(tokens):
        return None
    values = [_parse_float(tok) for tok in tokens[start : start + 3]]
    if any(v is None for v in values):
        return None
    return (values[0], values[1], values[2])  # type: ignore[return-value]


def parse_bone_tokens(tokens: list[str]) -> BoneValue:
    """Parse `[pos x y z] [rot z x y]` in any order. Unknown tokens are skipped."""

    rotation: Vec3 | None = None
    position: Vec3 | None = None
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok == "pos":
            position = _parse_triple(tokens, i + 1) or position
            i += 4
        elif tok == "rot":
            rotation = _parse_triple(tokens, i + 1) or rotation
            i += 4
        else:
            i += 1
    return BoneValue(rotation=rotation, position=position)


def _fmt(v: float) -> str:
    # Rounding first keeps tiny negatives from printing as "-0.0".
    return f"{round(float(v), 1) + 0.0:.1f}"


def format_bone_line(name: str, value: BoneValue, *, is_root: bool) -> str | None:
    """Render one bone line, or None when the value has nothing to emit."""

    if is_root and value.position is not None:
        p = value.position
        r = value.rotation if value.rotation is not None else (0.0, 0.0, 0.0)
        return (
            f"  {name:<10} pos {_fmt(p[0])} {_fmt(p[1])} {_fmt(p[2])}"
            f"  rot {_fmt(r[0])} {_fmt(r[1])} {_fmt(r[2])}"
        )
    if value.rotation is not None:
        r = value.rotation
        return f"  {name:<10} rot {_fmt(r[0])} {_fmt(r[1])} {_fmt(r[2])}"
    return None


def _sample_times(motion: RecordedMotion, interval: float | None) -> list[float]:
    if interval is None:
        return [float(t) for t in motion.times]

    if not (math.isfinite(interval) and interval > 0.0):
        raise ValueError("interval must be a finite positive number")

    duration = motion.duration
    times: list[float] = []
    i = 0
    while True:
        t = i * interval
        if t > duration + interval * 0.01:
            break
        times.append(min(t, duration))
        i += 1
    if duration - times[-1] > interval * 0.01:
        times.append(duration)
    return times


def generate(motion: RecordedMotion, interval: float | None = None) -> str:
    """Render a recorded motion as low-level DSL text.

    Without `interval` the motion's own sample times are used; otherwise samples
    are taken every `interval` seconds from 0, with a final sample at the duration.
    """

    sample_times = _sample_times(motion, interval)
    frame_time = motion.frame_time if interval is None else float(interval)

    lines = [f"# {motion.name}", f"duration {motion.duration:.4f}", f"frametime {frame_time:.6f}", ""]
    for t in sample_times:
        pose = motion.pose_at(t)
        lines.append(f"@{t:.4f}")
        for name in motion.bones:
            line = format_bone_line(name, pose[name], is_root=name == motion.root)
            if line is not None:
                lines.append(line)
        lines.append("")

    log.debug("Generated %d keyframes for %r (frametime=%.6f)", len(sample_times), motion.name, frame_time)
    return "\n".join(lines)


def parse(text: str) -> KeyframeSet:
    """Parse low-level DSL text. Lenient: anything unrecognized is dropped."""

    duration = 0.0
    keyframes: list[Keyframe] = []
    current: Keyframe | None = None

    for raw in text.split("\n"):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("duration "):
            v = _parse_float(line[len("duration ") :].strip())
            if v is not None:
                duration = v
            continue

        if line.startswith("frametime "):
            continue

        if line.startswith("@"):
            m = _MARKER_RE.match(line)
            if m is None:
                current = None
                continue
            current = Keyframe(time=float(m.group(1)), bones={})
            keyframes.append(current)
            continue

        if current is None:
            continue

        tokens = line.split()
        current.bones[tokens[0]] = parse_bone_tokens(tokens[1:])

    return KeyframeSet(duration=duration, keyframes=tuple(keyframes))


def compile_keyframes(parsed: KeyframeSet, reference_skeleton: object | None = None) -> CompiledClip:
    """Build per-bone quaternion (and, where supplied, position) tracks.

    Bones that never carry a rotation get no track. The clip duration is the
    parsed duration, which may differ from the last keyframe time.
    """

    tracks: list[Track] = []
    for bone in parsed.bone_names:
        # Keyed by rounded time: markers may be out of order, and later ones win.
        rot_at: dict[float, np.ndarray] = {}
        pos_at: dict[float, Vec3] = {}

        for kf in parsed.keyframes:
            value = kf.bones.get(bone)
            if value is None or value.rotation is None:
                continue

            key = round_time(float(kf.time))
            rot_at[key] = euler_zxy_to_quat(value.rotation)
            if value.position is not None:
                pos_at[key] = value.position

        if not rot_at:
            continue

        times = sorted(rot_at)
        tracks.append(
            Track(
                bone=bone,
                kind="quaternion",
                times=np.asarray(times, dtype=np.float64),
                values=np.asarray([rot_at[t] for t in times], dtype=np.float64).reshape(-1, 4),
            )
        )
        if pos_at:
            pos_times = sorted(pos_at)
            tracks.append(
                Track(
                    bone=bone,
                    kind="position",
                    times=np.asarray(pos_times, dtype=np.float64),
                    values=np.asarray([pos_at[t] for t in pos_times], dtype=np.float64).reshape(-1, 3),
                )
            )

    log.debug("Compiled %d tracks (duration=%.4f)", len(tracks), parsed.duration)
    return CompiledClip(duration=float(parsed.duration), tracks=tuple(tracks), skeleton=reference_skeleton)


def index_lines(text: str) -> list[LineMarker]:
    """Map every `@<time>` marker to its 0-based line number."""

    index: list[LineMarker] = []
    for i, raw in enumerate(text.split("\n")):
        m = _MARKER_RE.match(raw.strip())
        if m is None:
            continue
        index.append(LineMarker(time=float(m.group(1)), line=i))
    return index


def line_for_time(index: list[LineMarker], t: float) -> int:
    """Line of the last marker at or before `t`; -1 if there is none."""

    line = -1
    for marker in index:
        if marker.time <= t:
            line = marker.line
    return line
