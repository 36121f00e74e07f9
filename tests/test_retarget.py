from __future__ import annotations

import threading

import numpy as np
import pytest

from figura.core.codec import compile_keyframes, parse
from figura.core.errors import RetargetMissingRootError
from figura.core.keyframes import CompiledClip, Track
from figura.core.retarget import (
    BONE_MAP,
    DSL_TO_RIG,
    Retargeter,
    SkeletonBone,
    SkeletonDescriptor,
    retarget_animation,
)


def _rig_skeleton(hip_height: float = 90.0) -> SkeletonDescriptor:
    names = list(BONE_MAP)
    bones = [SkeletonBone(name=names[0], parent=None, rest_position=(0.0, hip_height, 0.0))]
    bones += [SkeletonBone(name=n, parent=names[0]) for n in names[1:]]
    return SkeletonDescriptor(bones=tuple(bones))


def _dsl_skeleton() -> SkeletonDescriptor:
    return SkeletonDescriptor(bones=(SkeletonBone(name="hip", parent=None), SkeletonBone(name="neck", parent="hip")))


def _dsl_clip(root_height: float = 100.0) -> CompiledClip:
    text = "\n".join(
        [
            "duration 1",
            "@0",
            f"  hip pos 2 {root_height} 0 rot 0 0 10",
            "  neck rot 5 0 0",
            "  tail rot 1 1 1",
            "@1",
            f"  hip pos 4 {root_height + 10} 0 rot 0 0 20",
            "  neck rot 6 0 0",
            "  tail rot 2 2 2",
        ]
    )
    return compile_keyframes(parse(text))


def test_bone_map_has_19_unique_entries() -> None:
    assert len(BONE_MAP) == 19
    assert len(set(BONE_MAP.values())) == 19
    assert DSL_TO_RIG["hip"] == "mixamorigHips"
    assert all(BONE_MAP[DSL_TO_RIG[dsl]] == dsl for dsl in DSL_TO_RIG)


def test_skeleton_descriptor_queries() -> None:
    sk = _rig_skeleton()
    assert sk.root.name == "mixamorigHips"
    assert "mixamorigHead" in sk
    assert sk.bone("mixamorigHead") is not None
    assert sk.bone("nope") is None
    assert sk.names()[0] == "mixamorigHips"

    with pytest.raises(ValueError):
        SkeletonDescriptor(bones=(SkeletonBone("a", None), SkeletonBone("a", None)))


def test_retarget_renames_copies_rotations_and_scales_root() -> None:
    clip = _dsl_clip(root_height=100.0)
    out = retarget_animation(_rig_skeleton(hip_height=90.0), _dsl_skeleton(), clip)

    assert set(out.bones()) == {"mixamorigHips", "mixamorigNeck"}
    assert out.duration == clip.duration

    neck_src = clip.track("neck", "quaternion")
    neck_dst = out.track("mixamorigNeck", "quaternion")
    assert neck_src is not None and neck_dst is not None
    assert np.array_equal(neck_src.values, neck_dst.values)

    hip_pos = out.track("mixamorigHips", "position")
    assert hip_pos is not None
    assert np.allclose(hip_pos.values, [[1.8, 90.0, 0.0], [3.6, 99.0, 0.0]])


def test_scale_is_cached_across_clips() -> None:
    r = Retargeter(_rig_skeleton(hip_height=90.0))
    r.retarget(_dsl_skeleton(), _dsl_clip(root_height=100.0))
    assert r.scale == pytest.approx(0.9)

    out = r.retarget(_dsl_skeleton(), _dsl_clip(root_height=50.0))
    assert r.scale == pytest.approx(0.9)
    hip_pos = out.track("mixamorigHips", "position")
    assert hip_pos is not None
    assert hip_pos.values[0, 1] == pytest.approx(45.0)

    r.reset_scale()
    r.retarget(_dsl_skeleton(), _dsl_clip(root_height=50.0))
    assert r.scale == pytest.approx(1.8)


def test_reverse_direction_rig_to_dsl() -> None:
    clip = CompiledClip(
        duration=1.0,
        tracks=(
            Track("mixamorigHips", "position", np.asarray([0.0]), np.asarray([[0.0, 200.0, 0.0]])),
            Track("mixamorigHead", "quaternion", np.asarray([0.0]), np.asarray([[0.0, 0.0, 0.0, 1.0]])),
        ),
    )
    target = SkeletonDescriptor(
        bones=(SkeletonBone("hip", None, rest_position=(0.0, 100.0, 0.0)), SkeletonBone("head", "hip"))
    )
    out = retarget_animation(target, _rig_skeleton(), clip)

    assert set(out.bones()) == {"hip", "head"}
    hip_pos = out.track("hip", "position")
    assert hip_pos is not None
    assert hip_pos.values[0, 1] == pytest.approx(100.0)


def test_missing_root_position_track_raises() -> None:
    clip = compile_keyframes(parse("duration 1\n@0\n  hip rot 0 0 0\n  neck rot 0 0 0\n"))
    with pytest.raises(RetargetMissingRootError):
        retarget_animation(_rig_skeleton(), _dsl_skeleton(), clip)


def test_target_without_root_counterpart_raises() -> None:
    target = SkeletonDescriptor(bones=(SkeletonBone("Pelvis", None),))
    with pytest.raises(RetargetMissingRootError):
        retarget_animation(target, _dsl_skeleton(), _dsl_clip())


def test_zero_source_height_falls_back_to_unit_scale() -> None:
    r = Retargeter(_rig_skeleton())
    r.retarget(_dsl_skeleton(), _dsl_clip(root_height=0.0))
    assert r.scale == 1.0


def test_concurrent_first_use_computes_one_scale() -> None:
    r = Retargeter(_rig_skeleton(hip_height=90.0))
    scales: list[float] = []

    def work(h: float) -> None:
        r.retarget(_dsl_skeleton(), _dsl_clip(root_height=h))
        scales.append(float(r.scale or 0.0))

    threads = [threading.Thread(target=work, args=(h,)) for h in (100.0, 50.0, 30.0, 45.0)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert len(set(scales)) == 1
