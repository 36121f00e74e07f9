from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import numpy as np

from .errors import RetargetMissingRootError
from .keyframes import CompiledClip, Track
from .rotation import Vec3


log = logging.getLogger(__name__)

# Rig (mixamo) bone name -> short DSL bone name.
BONE_MAP: dict[str, str] = {
    "mixamorigHips": "hip",
    "mixamorigSpine": "abdomen",
    "mixamorigSpine2": "chest",
    "mixamorigNeck": "neck",
    "mixamorigHead": "head",
    "mixamorigLeftShoulder": "lCollar",
    "mixamorigLeftArm": "lShldr",
    "mixamorigLeftForeArm": "lForeArm",
    "mixamorigLeftHand": "lHand",
    "mixamorigRightShoulder": "rCollar",
    "mixamorigRightArm": "rShldr",
    "mixamorigRightForeArm": "rForeArm",
    "mixamorigRightHand": "rHand",
    "mixamorigLeftUpLeg": "lThigh",
    "mixamorigLeftLeg": "lShin",
    "mixamorigLeftFoot": "lFoot",
    "mixamorigRightUpLeg": "rThigh",
    "mixamorigRightLeg": "rShin",
    "mixamorigRightFoot": "rFoot",
}

DSL_TO_RIG: dict[str, str] = {dsl: rig for rig, dsl in BONE_MAP.items()}


@dataclass(frozen=True)
class SkeletonBone:
    name: str
    parent: str | None
    rest_position: Vec3 = (0.0, 0.0, 0.0)
    rest_rotation: Vec3 = (0.0, 0.0, 0.0)  # [z, x, y] degrees


@dataclass(frozen=True)
class SkeletonDescriptor:
    """Bone names plus rest-pose local transforms. The first parentless bone is the root."""

    bones: tuple[SkeletonBone, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        names = [b.name for b in self.bones]
        if len(set(names)) != len(names):
            raise ValueError("Skeleton bone names must be unique")

    @property
    def root(self) -> SkeletonBone:
        for b in self.bones:
            if b.parent is None:
                return b
        raise ValueError("Skeleton has no root bone")

    def names(self) -> list[str]:
        return [b.name for b in self.bones]

    def bone(self, name: str) -> SkeletonBone | None:
        for b in self.bones:
            if b.name == name:
                return b
        return None

    def __contains__(self, name: object) -> bool:
        return any(b.name == name for b in self.bones)


def _resolve_mapping(source_root: str, target: SkeletonDescriptor) -> dict[str, str]:
    """Pick the table direction whose counterpart for the source root exists in the target."""

    for mapping in (DSL_TO_RIG, BONE_MAP):
        counterpart = mapping.get(source_root)
        if counterpart is not None and counterpart in target:
            return mapping
    raise RetargetMissingRootError(f"Target skeleton has no bone mapped to source root '{source_root}'")


class Retargeter:
    """Renames and rescales compiled clips onto one target skeleton.

    The root-position scale factor is computed from the first clip retargeted
    and reused afterwards, so swapping clips live does not make the character
    jump. Build one instance per target skeleton.
    """

    def __init__(self, target: SkeletonDescriptor) -> None:
        self.target = target
        self._lock = threading.Lock()
        self._scale: float | None = None

    @property
    def scale(self) -> float | None:
        with self._lock:
            return self._scale

    def reset_scale(self) -> None:
        with self._lock:
            self._scale = None

    def _scale_for(self, target_root: str, root_track: Track) -> float:
        with self._lock:
            if self._scale is not None:
                return self._scale

            bone = self.target.bone(target_root)
            target_height = float(bone.rest_position[1]) if bone is not None else 0.0
            source_height = float(root_track.values[0, 1])
            if abs(source_height) < 1e-9:
                log.warning("Source root height is zero at the first sample; using scale 1.0")
                self._scale = 1.0
            else:
                self._scale = target_height / source_height
            log.debug(
                "Retarget scale %.6f (target root height %.3f, source root height %.3f)",
                self._scale,
                target_height,
                source_height,
            )
            return self._scale

    def retarget(self, source_skeleton: SkeletonDescriptor, clip: CompiledClip) -> CompiledClip:
        source_root = source_skeleton.root.name
        mapping = _resolve_mapping(source_root, self.target)

        root_track = clip.track(source_root, "position")
        if root_track is None:
            raise RetargetMissingRootError(f"Clip '{clip.name}' has no position track for root '{source_root}'")

        scale = self._scale_for(mapping[source_root], root_track)

        tracks: list[Track] = []
        for tr in clip.tracks:
            name = mapping.get(tr.bone)
            if name is None:
                continue
            values = tr.values
            if tr.bone == source_root and tr.kind == "position":
                values = np.asarray(values, dtype=np.float64) * scale
            tracks.append(Track(bone=name, kind=tr.kind, times=tr.times, values=values))

        return CompiledClip(duration=clip.duration, tracks=tuple(tracks), name=clip.name, skeleton=self.target)


def retarget_animation(
    target: SkeletonDescriptor,
    source_skeleton: SkeletonDescriptor,
    clip: CompiledClip,
) -> CompiledClip:
    """One-shot retarget with a fresh scale factor."""
    return Retargeter(target).retarget(source_skeleton, clip)
