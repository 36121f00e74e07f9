from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Literal, Sequence

from .codec import DEFAULT_FRAME_TIME, LineMarker, _parse_float, format_bone_line, parse_bone_tokens
from .keyframes import ROOT_BONE, BoneValue, Keyframe, round_time
from .library import ClipLibrary
from .rotation import lerp_vec3, slerp_euler


log = logging.getLogger(__name__)

DEFAULT_BPM = 120.0
BEATS_PER_MEASURE = 4

# Pose name that stands for "no overrides".
REST_POSE = "rest"

MIRROR_PAIRS: tuple[tuple[str, str], ...] = (
    ("lCollar", "rCollar"),
    ("lShldr", "rShldr"),
    ("lForeArm", "rForeArm"),
    ("lHand", "rHand"),
    ("lThigh", "rThigh"),
    ("lShin", "rShin"),
    ("lFoot", "rFoot"),
)

MIRROR_MAP: dict[str, str] = {}
for _left, _right in MIRROR_PAIRS:
    MIRROR_MAP[_left] = _right
    MIRROR_MAP[_right] = _left

EaseName = Literal["linear", "ease-in", "ease-out", "ease-in-out"]

EASING: dict[str, Callable[[float], float]] = {
    "linear": lambda t: t,
    "ease-in": lambda t: t * t,
    "ease-out": lambda t: t * (2.0 - t),
    "ease-in-out": lambda t: 2.0 * t * t if t < 0.5 else -1.0 + (4.0 - 2.0 * t) * t,
}

EntryKind = Literal["clip", "pose"]

_CLIP_RE = re.compile(r"^clip\s+(\S+)\s+from\s+(\S+)\s+(\S+)")
_POSE_HEADER_RE = re.compile(r"^pose\s+(\S+)\s*$")
_ENTRY_RE = re.compile(r"^@(\d+):(\d+)\s+(clip|pose)\s+(.+)")
_BEAT_MARKER_RE = re.compile(r"^@(\d+):(\d+)")


@dataclass(frozen=True)
class ClipDefinition:
    name: str
    source: str
    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class Pose:
    name: str
    bones: dict[str, BoneValue] = field(default_factory=dict)


@dataclass(frozen=True)
class Modifiers:
    mirror: bool = False
    reverse: bool = False
    speed: float | None = None
    ease: EaseName | None = None
    hold: float | None = None


@dataclass(frozen=True)
class SequenceEntry:
    measure: int
    beat: int
    kind: EntryKind
    name: str
    modifiers: Modifiers = field(default_factory=Modifiers)
    line: int = -1

    def time(self, bpm: float) -> float:
        return beat_to_seconds(self.measure, self.beat, bpm)


@dataclass(frozen=True)
class Choreography:
    """A parsed high-level script."""

    bpm: float = DEFAULT_BPM
    sources: tuple[str, ...] = field(default_factory=tuple)
    clips: dict[str, ClipDefinition] = field(default_factory=dict)
    poses: dict[str, Pose] = field(default_factory=dict)
    sequence: tuple[SequenceEntry, ...] = field(default_factory=tuple)

    def pose_bones(self, name: str) -> dict[str, BoneValue]:
        if name == REST_POSE:
            return {}
        pose = self.poses.get(name)
        if pose is None:
            log.warning("Sequence references unknown pose %r; treating it as %r", name, REST_POSE)
            return {}
        return pose.bones


def beat_to_seconds(measure: int, beat: int, bpm: float) -> float:
    """Musical time to seconds, 4 beats per measure; `@1:1` is 0."""

    seconds_per_beat = 60.0 / float(bpm)
    return (measure - 1) * BEATS_PER_MEASURE * seconds_per_beat + (beat - 1) * seconds_per_beat


def _parse_range(token: str) -> tuple[float, float] | None:
    parts = token.split("-")
    if len(parts) != 2:
        return None
    start = _parse_float(parts[0])
    end = _parse_float(parts[1])
    if start is None or end is None:
        return None
    return start, end


def _parse_modifiers(tokens: list[str]) -> Modifiers:
    mirror = False
    reverse = False
    speed: float | None = None
    hold: float | None = None
    ease: str | None = None

    j = 0
    while j < len(tokens):
        tok = tokens[j]
        if tok == "mirror":
            mirror = True
            j += 1
        elif tok == "reverse":
            reverse = True
            j += 1
        elif tok in ("speed", "hold"):
            v = _parse_float(tokens[j + 1]) if j + 1 < len(tokens) else None
            if v is not None:
                if tok == "speed":
                    speed = v
                else:
                    hold = v
            j += 2
        elif tok in EASING:
            ease = tok
            j += 1
        else:
            j += 1

    return Modifiers(mirror=mirror, reverse=reverse, speed=speed, ease=ease, hold=hold)  # type: ignore[arg-type]


def parse_script(text: str, *, default_bpm: float = DEFAULT_BPM) -> Choreography:
    """Parse a high-level script.

    Lenient like the low-level parser: unrecognized or malformed lines are
    dropped. A `pose <name>` header collects the bone lines that follow it
    until a blank line, a comment or another statement.
    """

    bpm = default_bpm
    sources: list[str] = []
    clips: dict[str, ClipDefinition] = {}
    poses: dict[str, dict[str, BoneValue]] = {}
    sequence: list[SequenceEntry] = []
    current_pose: str | None = None

    for i, raw in enumerate(text.split("\n")):
        line = raw.strip()
        if not line or line.startswith("#"):
            current_pose = None
            continue

        if line.startswith("bpm "):
            v = _parse_float(line[len("bpm ") :].strip())
            if v is not None and v > 0.0:
                bpm = v
            current_pose = None
            continue

        if line.startswith("source "):
            name = line[len("source ") :].strip()
            if name:
                sources.append(name)
            current_pose = None
            continue

        m = _CLIP_RE.match(line)
        if m is not None:
            window = _parse_range(m.group(3))
            if window is not None:
                clips[m.group(1)] = ClipDefinition(name=m.group(1), source=m.group(2), start=window[0], end=window[1])
            current_pose = None
            continue

        m = _POSE_HEADER_RE.match(line)
        if m is not None:
            current_pose = m.group(1)
            poses[current_pose] = {}
            continue

        m = _ENTRY_RE.match(line)
        if m is not None:
            tokens = m.group(4).split()
            sequence.append(
                SequenceEntry(
                    measure=int(m.group(1)),
                    beat=int(m.group(2)),
                    kind=m.group(3),  # type: ignore[arg-type]
                    name=tokens[0],
                    modifiers=_parse_modifiers(tokens[1:]),
                    line=i,
                )
            )
            current_pose = None
            continue

        if current_pose is not None:
            tokens = line.split()
            poses[current_pose][tokens[0]] = parse_bone_tokens(tokens[1:])
            continue

        current_pose = None

    return Choreography(
        bpm=bpm,
        sources=tuple(sources),
        clips=clips,
        poses={name: Pose(name=name, bones=bones) for name, bones in poses.items()},
        sequence=tuple(sequence),
    )


def reverse_keyframes(keyframes: Sequence[Keyframe]) -> list[Keyframe]:
    """Play backwards: last keyframe moves to 0, times still increase."""

    if not keyframes:
        return []
    max_time = keyframes[-1].time
    return [Keyframe(time=max_time - kf.time, bones=kf.bones) for kf in reversed(keyframes)]


def scale_keyframes(keyframes: Sequence[Keyframe], speed: float) -> list[Keyframe]:
    return [Keyframe(time=kf.time / speed, bones=kf.bones) for kf in keyframes]


def mirror_bone(name: str, value: BoneValue, *, root: str = ROOT_BONE) -> tuple[str, BoneValue]:
    if name != root:
        return MIRROR_MAP.get(name, name), value
    pos = value.position
    rot = value.rotation
    return MIRROR_MAP.get(name, name), BoneValue(
        rotation=(rot[0], rot[1], -rot[2]) if rot is not None else None,
        position=(-pos[0], pos[1], pos[2]) if pos is not None else None,
    )


def mirror_keyframes(keyframes: Sequence[Keyframe], *, root: str = ROOT_BONE) -> list[Keyframe]:
    """Swap left/right bone pairs; the root's X position and Y rotation change sign."""

    out: list[Keyframe] = []
    for kf in keyframes:
        bones: dict[str, BoneValue] = {}
        for name, value in kf.bones.items():
            mirrored_name, mirrored = mirror_bone(name, value, root=root)
            bones[mirrored_name] = mirrored
        out.append(Keyframe(time=kf.time, bones=bones))
    return out


class FrameMap:
    """Compositing buffer: rounded time -> bone -> value. One per expand call."""

    def __init__(self) -> None:
        self._frames: dict[float, dict[str, BoneValue]] = {}

    def __len__(self) -> int:
        return len(self._frames)

    def touch(self, time: float) -> dict[str, BoneValue]:
        return self._frames.setdefault(round_time(time), {})

    def write(self, time: float, bone: str, value: BoneValue) -> None:
        """Replace the whole value of `bone` at `time`."""
        self.touch(time)[bone] = value

    def stamp(self, time: float, bone: str, value: BoneValue) -> None:
        """Override only the fields `value` supplies."""
        frame = self.touch(time)
        frame[bone] = frame.get(bone, BoneValue()).overlay(value)

    def stamp_pose(self, time: float, bones: dict[str, BoneValue]) -> None:
        self.touch(time)
        for bone, value in bones.items():
            self.stamp(time, bone, value)

    def times(self) -> list[float]:
        return sorted(self._frames)

    def bones_at(self, time: float) -> dict[str, BoneValue]:
        return self._frames.get(round_time(time), {})


def _effective_speed(entry: SequenceEntry) -> float | None:
    speed = entry.modifiers.speed
    if speed is None:
        return None
    if speed <= 0.0:
        log.warning("Ignoring non-positive speed %r for clip %r (line %d)", speed, entry.name, entry.line)
        return None
    return speed


def _blend(src: BoneValue, dst: BoneValue, t: float) -> BoneValue:
    rot = None
    if src.rotation is not None and dst.rotation is not None:
        rot = slerp_euler(src.rotation, dst.rotation, t)
    pos = None
    if src.position is not None and dst.position is not None:
        pos = lerp_vec3(src.position, dst.position, t)
    return BoneValue(rotation=rot, position=pos)


def _composite_clips(
    frames: FrameMap,
    entries: list[tuple[float, SequenceEntry]],
    choreography: Choreography,
    library: ClipLibrary,
    root: str,
) -> list[float]:
    clip_ends: list[float] = []
    for time, entry in entries:
        clip_def = choreography.clips.get(entry.name)
        if clip_def is None:
            log.warning("Sequence references unknown clip %r (line %d); skipping", entry.name, entry.line)
            continue

        keyframes: list[Keyframe] = list(library.extract(clip_def.source, clip_def.start, clip_def.end).keyframes)
        speed = _effective_speed(entry)
        if entry.modifiers.reverse:
            keyframes = reverse_keyframes(keyframes)
        if speed is not None:
            keyframes = scale_keyframes(keyframes, speed)
        if entry.modifiers.mirror:
            keyframes = mirror_keyframes(keyframes, root=root)

        for kf in keyframes:
            at = time + kf.time
            frames.touch(at)
            for bone, value in kf.bones.items():
                frames.write(at, bone, value)

        length = clip_def.length / speed if speed is not None else clip_def.length
        clip_ends.append(time + length)
    return clip_ends


def _composite_poses(
    frames: FrameMap,
    entries: list[tuple[float, SequenceEntry]],
    choreography: Choreography,
    frame_time: float,
) -> None:
    seconds_per_beat = 60.0 / choreography.bpm
    for i, (time, entry) in enumerate(entries):
        pose = choreography.pose_bones(entry.name)

        if i + 1 >= len(entries):
            frames.stamp_pose(time, pose)
            continue

        next_time, next_entry = entries[i + 1]
        next_pose = choreography.pose_bones(next_entry.name)
        ease = EASING[entry.modifiers.ease or "linear"]
        interp_start = time + (entry.modifiers.hold or 0.0) * seconds_per_beat
        interp_end = next_time

        k = 0
        while time + k * frame_time < interp_start + frame_time * 0.5:
            frames.stamp_pose(time + k * frame_time, pose)
            k += 1

        if interp_end <= interp_start:
            continue

        bones = list(dict.fromkeys([*pose, *next_pose]))
        span = interp_end - interp_start
        k = 0
        while interp_start + k * frame_time <= interp_end + frame_time * 0.5:
            t = interp_start + k * frame_time
            k += 1
            blend = ease(min(1.0, max(0.0, (t - interp_start) / span)))
            frames.touch(t)
            for bone in bones:
                src = pose.get(bone)
                dst = next_pose.get(bone)
                if src is not None and dst is not None:
                    value = _blend(src, dst, blend)
                    if value.rotation is not None or value.position is not None:
                        frames.stamp(t, bone, value)
                elif src is not None:
                    # Held until the blend completes, then the clip layer shows through.
                    if blend < 1.0:
                        frames.stamp(t, bone, src)
                elif dst is not None:
                    # Snaps in: the clip value under this bone is not blended from.
                    if blend > 0.0:
                        frames.stamp(t, bone, dst)


def expand(
    choreography: Choreography,
    library: ClipLibrary,
    *,
    frame_time: float = DEFAULT_FRAME_TIME,
    root: str = ROOT_BONE,
) -> str:
    """Composite a parsed script into low-level DSL text.

    Clips are laid down first (later clips overwrite earlier ones at the same
    time bucket), then poses are stamped on top and interpolated toward the
    next pose at `frame_time` steps.
    """

    bpm = choreography.bpm
    clip_entries = sorted(
        ((e.time(bpm), e) for e in choreography.sequence if e.kind == "clip"),
        key=lambda pair: pair[0],
    )
    pose_entries = sorted(
        ((e.time(bpm), e) for e in choreography.sequence if e.kind == "pose"),
        key=lambda pair: pair[0],
    )

    frames = FrameMap()
    clip_ends = _composite_clips(frames, clip_entries, choreography, library, root)
    _composite_poses(frames, pose_entries, choreography, frame_time)

    times = frames.times()
    if not times:
        return f"duration 0\nframetime {frame_time:.6f}\n"

    duration = max([times[-1], *clip_ends])

    lines = ["# Generated from choreography", f"duration {duration:.4f}", f"frametime {frame_time:.6f}", ""]
    for t in times:
        lines.append(f"@{t:.4f}")
        for name, value in frames.bones_at(t).items():
            line = format_bone_line(name, value, is_root=name == root)
            if line is not None:
                lines.append(line)
        lines.append("")

    log.debug(
        "Expanded %d clip entries and %d pose entries into %d frames (duration=%.4f)",
        len(clip_entries),
        len(pose_entries),
        len(times),
        duration,
    )
    return "\n".join(lines)


def index_script_lines(text: str, *, default_bpm: float = DEFAULT_BPM) -> list[LineMarker]:
    """Map every `@measure:beat` marker to its time and 0-based line number.

    Times use the most recent `bpm` declared above the marker.
    """

    bpm = default_bpm
    index: list[LineMarker] = []
    for i, raw in enumerate(text.split("\n")):
        trimmed = raw.strip()
        if trimmed.startswith("bpm "):
            v = _parse_float(trimmed[len("bpm ") :].strip())
            if v is not None and v > 0.0:
                bpm = v
        m = _BEAT_MARKER_RE.match(trimmed)
        if m is not None:
            index.append(LineMarker(time=beat_to_seconds(int(m.group(1)), int(m.group(2)), bpm), line=i))
    return index
