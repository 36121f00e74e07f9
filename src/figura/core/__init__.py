from __future__ import annotations

from .choreography import (
    EASING,
    MIRROR_PAIRS,
    Choreography,
    ClipDefinition,
    FrameMap,
    Modifiers,
    Pose,
    SequenceEntry,
    beat_to_seconds,
    expand,
    index_script_lines,
    mirror_keyframes,
    parse_script,
    reverse_keyframes,
    scale_keyframes,
)
from .codec import LineMarker, compile_keyframes, generate, index_lines, line_for_time, parse
from .errors import RetargetMissingRootError, UnknownSourceError
from .examples import EXAMPLES, Example, get_example
from .keyframes import (
    ROOT_BONE,
    BoneValue,
    CompiledClip,
    Keyframe,
    KeyframeSet,
    RecordedMotion,
    SampledBone,
    Track,
    round_time,
)
from .library import ClipLibrary
from .retarget import BONE_MAP, DSL_TO_RIG, Retargeter, SkeletonBone, SkeletonDescriptor, retarget_animation
from .session import ChoreographySession
from .settings import CompilerSettings, load_settings

__all__ = [
    "ROOT_BONE",
    "BoneValue",
    "Keyframe",
    "KeyframeSet",
    "RecordedMotion",
    "SampledBone",
    "Track",
    "CompiledClip",
    "round_time",
    "LineMarker",
    "generate",
    "parse",
    "compile_keyframes",
    "index_lines",
    "line_for_time",
    "ClipLibrary",
    "UnknownSourceError",
    "RetargetMissingRootError",
    "EASING",
    "MIRROR_PAIRS",
    "ClipDefinition",
    "Pose",
    "Modifiers",
    "SequenceEntry",
    "Choreography",
    "FrameMap",
    "beat_to_seconds",
    "parse_script",
    "expand",
    "index_script_lines",
    "reverse_keyframes",
    "scale_keyframes",
    "mirror_keyframes",
    "BONE_MAP",
    "DSL_TO_RIG",
    "SkeletonBone",
    "SkeletonDescriptor",
    "Retargeter",
    "retarget_animation",
    "ChoreographySession",
    "CompilerSettings",
    "load_settings",
    "Example",
    "EXAMPLES",
    "get_example",
]
