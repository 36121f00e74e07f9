from __future__ import annotations

import logging

import pytest

from figura.core.choreography import (
    EASING,
    FrameMap,
    beat_to_seconds,
    expand,
    index_script_lines,
    mirror_keyframes,
    parse_script,
    reverse_keyframes,
    scale_keyframes,
)
from figura.core.codec import parse
from figura.core.errors import UnknownSourceError
from figura.core.keyframes import BoneValue, Keyframe, KeyframeSet
from figura.core.library import ClipLibrary


def _frame(parsed: KeyframeSet, t: float) -> dict[str, BoneValue]:
    for kf in parsed.keyframes:
        if abs(kf.time - t) < 5e-4:
            return kf.bones
    raise AssertionError(f"no keyframe at {t}")


def _expand(script: str, library: ClipLibrary) -> KeyframeSet:
    return parse(expand(parse_script(script), library))


def test_parse_script_statements() -> None:
    script = "\n".join(
        [
            "# a comment",
            "bpm 90",
            "source pirouette",
            "source other",
            "clip spin from pirouette 1.5-3.5",
            "clip broken from pirouette 1.5",
            "pose arms",
            "  lShldr rot 0 0 -160",
            "  hip pos 0 80 0",
            "",
            "  stray rot 1 1 1",
            "@1:1 clip spin mirror reverse speed 2 ease-in",
            "@2:3  pose arms ease-in-out hold 1.5",
            "@x:1 clip spin",
            "nonsense here",
        ]
    )
    choreo = parse_script(script)

    assert choreo.bpm == 90.0
    assert choreo.sources == ("pirouette", "other")
    assert set(choreo.clips) == {"spin"}
    spin = choreo.clips["spin"]
    assert (spin.source, spin.start, spin.end, spin.length) == ("pirouette", 1.5, 3.5, 2.0)

    arms = choreo.poses["arms"].bones
    assert arms == {
        "lShldr": BoneValue(rotation=(0.0, 0.0, -160.0)),
        "hip": BoneValue(position=(0.0, 80.0, 0.0)),
    }

    assert len(choreo.sequence) == 2
    first, second = choreo.sequence
    assert (first.measure, first.beat, first.kind, first.name, first.line) == (1, 1, "clip", "spin", 11)
    assert first.modifiers.mirror and first.modifiers.reverse
    assert first.modifiers.speed == 2.0
    assert first.modifiers.ease == "ease-in"
    assert (second.kind, second.name) == ("pose", "arms")
    assert second.modifiers.ease == "ease-in-out"
    assert second.modifiers.hold == 1.5
    assert second.time(90.0) == pytest.approx(beat_to_seconds(2, 3, 90.0))


def test_sequence_entry_right_after_pose_lines_is_not_a_bone() -> None:
    choreo = parse_script("pose a\n  neck rot 0 0 5\n@1:1 pose a\n")
    assert set(choreo.poses["a"].bones) == {"neck"}
    assert [e.name for e in choreo.sequence] == ["a"]


def test_parse_script_defaults() -> None:
    choreo = parse_script("")
    assert choreo.bpm == 120.0
    assert choreo.sequence == ()
    assert parse_script("", default_bpm=100.0).bpm == 100.0
    assert parse_script("bpm 0\n").bpm == 120.0


@pytest.mark.parametrize("bpm", [60.0, 90.0, 120.0, 173.5])
def test_beat_to_seconds_origin(bpm: float) -> None:
    assert beat_to_seconds(1, 1, bpm) == 0.0


def test_beat_to_seconds_values() -> None:
    assert beat_to_seconds(3, 1, 120.0) == 4.0
    assert beat_to_seconds(1, 2, 60.0) == 1.0
    assert beat_to_seconds(2, 3, 120.0) == pytest.approx(3.0)


@pytest.mark.parametrize(
    "name,t,expected",
    [
        ("linear", 0.3, 0.3),
        ("ease-in", 0.5, 0.25),
        ("ease-out", 0.5, 0.75),
        ("ease-in-out", 0.25, 0.125),
        ("ease-in-out", 0.75, 0.875),
    ],
)
def test_easing_values(name: str, t: float, expected: float) -> None:
    assert EASING[name](t) == pytest.approx(expected)


@pytest.mark.parametrize("name", sorted(EASING))
def test_easing_endpoints(name: str) -> None:
    assert EASING[name](0.0) == pytest.approx(0.0)
    assert EASING[name](1.0) == pytest.approx(1.0)


def test_reverse_is_an_involution_and_keeps_duration(library: ClipLibrary) -> None:
    keyframes = list(library.extract("pirouette", 1.0, 3.0).keyframes)
    rev = reverse_keyframes(keyframes)

    assert rev[0].time == pytest.approx(0.0)
    assert rev[-1].time == pytest.approx(keyframes[-1].time)
    assert all(b.time > a.time for a, b in zip(rev, rev[1:]))
    assert rev[0].bones == keyframes[-1].bones

    back = reverse_keyframes(rev)
    assert [kf.time for kf in back] == pytest.approx([kf.time for kf in keyframes], abs=1e-9)
    assert reverse_keyframes([]) == []


def test_mirror_is_an_involution() -> None:
    kf = Keyframe(
        time=0.0,
        bones={
            "hip": BoneValue(rotation=(1.0, 2.0, 3.0), position=(4.0, 90.0, 6.0)),
            "lShldr": BoneValue(rotation=(10.0, 0.0, 0.0)),
            "rFoot": BoneValue(rotation=(0.0, 5.0, 0.0)),
            "neck": BoneValue(rotation=(0.0, 0.0, 7.0)),
        },
    )
    once = mirror_keyframes([kf])[0]

    assert once.bones["hip"] == BoneValue(rotation=(1.0, 2.0, -3.0), position=(-4.0, 90.0, 6.0))
    assert once.bones["rShldr"] == BoneValue(rotation=(10.0, 0.0, 0.0))
    assert once.bones["lFoot"] == BoneValue(rotation=(0.0, 5.0, 0.0))
    assert once.bones["neck"] == kf.bones["neck"]
    assert set(once.bones) == {"hip", "rShldr", "lFoot", "neck"}

    twice = mirror_keyframes([once])[0]
    assert twice.bones == kf.bones


def test_scale_divides_times() -> None:
    kfs = [Keyframe(time=0.0), Keyframe(time=1.0), Keyframe(time=3.0)]
    assert [kf.time for kf in scale_keyframes(kfs, 2.0)] == [0.0, 0.5, 1.5]


def test_frame_map_write_replaces_and_stamp_overlays() -> None:
    frames = FrameMap()
    frames.write(1.00001, "hip", BoneValue(rotation=(1.0, 1.0, 1.0), position=(0.0, 90.0, 0.0)))
    frames.stamp(1.0, "hip", BoneValue(position=(5.0, 50.0, 5.0)))
    assert frames.bones_at(1.0)["hip"] == BoneValue(rotation=(1.0, 1.0, 1.0), position=(5.0, 50.0, 5.0))

    frames.write(1.0, "hip", BoneValue(rotation=(2.0, 2.0, 2.0)))
    assert frames.bones_at(1.0)["hip"] == BoneValue(rotation=(2.0, 2.0, 2.0))

    frames.touch(0.5)
    assert frames.times() == [0.5, 1.0]
    assert len(frames) == 2


def test_clip_placed_at_musical_time(library: ClipLibrary) -> None:
    script = "bpm 120\nsource pirouette\nclip spin from pirouette 1.5-3.5\n@3:1 clip spin\n"
    out = _expand(script, library)

    assert out.keyframes[0].time == 4.0
    assert out.keyframes[-1].time == pytest.approx(6.0)
    assert out.duration == pytest.approx(6.0)
    source = library.get("pirouette")
    assert _frame(out, 4.0) == _frame(source, 1.5)
    assert _frame(out, 5.0) == _frame(source, 2.5)


def test_expand_header_format(library: ClipLibrary) -> None:
    text = expand(parse_script("clip a from pirouette 0-1\n@1:1 clip a\n"), library)
    lines = text.split("\n")
    assert lines[0] == "# Generated from choreography"
    assert lines[1] == "duration 1.0000"
    assert lines[2] == "frametime 0.033333"
    assert lines[4] == "@0.0000"


def test_empty_expand(library: ClipLibrary) -> None:
    assert expand(parse_script("bpm 100\n"), library) == "duration 0\nframetime 0.033333\n"


def test_speed_stretches_clip_and_duration(library: ClipLibrary) -> None:
    out = _expand("clip full from pirouette 0.0-4.9\n@1:1 clip full speed 0.5\n", library)

    assert out.duration == pytest.approx(9.8)
    assert out.keyframes[-1].time == pytest.approx(9.8)
    assert _frame(out, 2.0) == _frame(library.get("pirouette"), 1.0)


def test_non_positive_speed_is_ignored(library: ClipLibrary, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="figura.core.choreography"):
        out = _expand("clip full from pirouette 0.0-4.9\n@1:1 clip full speed -2\n", library)

    assert out.duration == pytest.approx(4.9)
    assert any("non-positive speed" in r.getMessage() for r in caplog.records)


def test_reverse_and_mirror_in_expand(library: ClipLibrary) -> None:
    source = library.get("pirouette")

    rev = _expand("clip a from pirouette 1.0-3.0\n@1:1 clip a reverse\n", library)
    assert _frame(rev, 0.0) == _frame(source, 3.0)
    assert _frame(rev, 2.0) == _frame(source, 1.0)

    mir = _expand("clip a from pirouette 1.0-3.0\n@1:1 clip a mirror\n", library)
    src = _frame(source, 1.0)
    got = _frame(mir, 0.0)
    assert got["rShldr"] == src["lShldr"]
    assert got["lThigh"] == src["rThigh"]
    assert got["neck"] == src["neck"]
    assert got["hip"].position == (-src["hip"].position[0], src["hip"].position[1], src["hip"].position[2])
    assert got["hip"].rotation == (src["hip"].rotation[0], src["hip"].rotation[1], -src["hip"].rotation[2])


def test_later_clip_overwrites_earlier_in_same_bucket(library: ClipLibrary) -> None:
    script = "\n".join(
        [
            "clip a from pirouette 0.0-2.0",
            "clip b from pirouette 3.0-4.0",
            "@1:1 clip a",
            "@1:3 clip b",
        ]
    )
    out = _expand(script, library)
    source = library.get("pirouette")

    assert _frame(out, 0.5) == _frame(source, 0.5)
    assert _frame(out, 1.5) == _frame(source, 3.5)
    assert out.duration == pytest.approx(2.0)


def test_unknown_clip_is_skipped_with_warning(library: ClipLibrary, caplog: pytest.LogCaptureFixture) -> None:
    script = "clip a from pirouette 0.0-1.0\n@1:1 clip ghost\n@1:1 clip a\n"
    with caplog.at_level(logging.WARNING, logger="figura.core.choreography"):
        out = _expand(script, library)

    assert out.duration == pytest.approx(1.0)
    assert any("ghost" in r.getMessage() for r in caplog.records)


def test_unknown_source_is_fatal(library: ClipLibrary) -> None:
    with pytest.raises(UnknownSourceError):
        expand(parse_script("clip a from missing 0-1\n@1:1 clip a\n"), library)


def test_pose_is_stamped_over_clip_per_field(library: ClipLibrary) -> None:
    script = "\n".join(
        [
            "clip full from pirouette 0.0-4.9",
            "pose low",
            "  hip pos 0 50 0",
            "  lShldr rot 0 0 -160",
            "",
            "@1:1 clip full",
            "@1:1 pose low",
        ]
    )
    out = _expand(script, library)
    src = _frame(library.get("pirouette"), 0.0)
    got = _frame(out, 0.0)

    assert got["hip"] == BoneValue(rotation=src["hip"].rotation, position=(0.0, 50.0, 0.0))
    assert got["lShldr"] == BoneValue(rotation=(0.0, 0.0, -160.0))
    assert got["neck"] == src["neck"]
    # Only the final pose's own instant is stamped.
    assert _frame(out, 1.0) == _frame(library.get("pirouette"), 1.0)


def test_hold_then_interpolate_at_bpm_60(library: ClipLibrary) -> None:
    script = "\n".join(
        [
            "bpm 60",
            "pose a",
            "  lShldr rot 0 0 0",
            "",
            "pose b",
            "  lShldr rot 0 0 80",
            "",
            "@1:1 pose a hold 2",
            "@2:1 pose b",
        ]
    )
    out = _expand(script, library)

    for kf in out.keyframes:
        if kf.time <= 2.0 + 1e-6:
            assert kf.bones["lShldr"] == BoneValue(rotation=(0.0, 0.0, 0.0))

    assert _frame(out, 2.5)["lShldr"].rotation == pytest.approx((0.0, 0.0, 20.0), abs=0.11)
    assert _frame(out, 3.0)["lShldr"].rotation == pytest.approx((0.0, 0.0, 40.0), abs=0.11)
    assert _frame(out, 4.0)["lShldr"].rotation == pytest.approx((0.0, 0.0, 80.0), abs=0.11)
    times = [kf.time for kf in out.keyframes]
    assert all(b > a for a, b in zip(times, times[1:]))


def test_easing_shapes_the_blend(library: ClipLibrary) -> None:
    script = "bpm 60\npose a\n  neck rot 0 0 0\n\npose b\n  neck rot 0 0 80\n\n@1:1 pose a ease-in\n@2:1 pose b\n"
    out = _expand(script, library)
    # ease-in at the halfway point: 0.5 ** 2 of the way.
    assert _frame(out, 2.0)["neck"].rotation == pytest.approx((0.0, 0.0, 20.0), abs=0.11)


def test_pose_positions_lerp_while_rotations_slerp(library: ClipLibrary) -> None:
    script = "\n".join(
        [
            "bpm 60",
            "pose crouch",
            "  hip pos 0 80 0 rot 0 0 0",
            "",
            "pose rise",
            "  hip pos 4 100 0 rot 0 0 40",
            "",
            "@1:1 pose crouch",
            "@2:1 pose rise",
        ]
    )
    out = _expand(script, library)

    quarter = _frame(out, 1.0)["hip"]
    assert quarter.position == pytest.approx((1.0, 85.0, 0.0), abs=0.06)
    assert quarter.rotation == pytest.approx((0.0, 0.0, 10.0), abs=0.11)

    half = _frame(out, 2.0)["hip"]
    assert half.position == pytest.approx((2.0, 90.0, 0.0), abs=0.06)
    assert half.rotation == pytest.approx((0.0, 0.0, 20.0), abs=0.11)

    end = _frame(out, 4.0)["hip"]
    assert end == BoneValue(rotation=(0.0, 0.0, 40.0), position=(4.0, 100.0, 0.0))


def test_bones_present_in_only_one_pose(library: ClipLibrary) -> None:
    script = "\n".join(
        [
            "bpm 60",
            "pose a",
            "  neck rot 0 0 10",
            "",
            "pose b",
            "  head rot 0 0 50",
            "",
            "@1:1 pose a",
            "@2:1 pose b",
        ]
    )
    out = _expand(script, library)

    start = _frame(out, 0.0)
    assert start["neck"] == BoneValue(rotation=(0.0, 0.0, 10.0))
    assert "head" not in start

    # The destination-only bone snaps in at the first step after the start.
    first_step = out.keyframes[1]
    assert first_step.time == pytest.approx(1.0 / 30.0, abs=1e-4)
    assert first_step.bones["head"] == BoneValue(rotation=(0.0, 0.0, 50.0))

    mid = _frame(out, 3.0)
    assert mid["neck"] == BoneValue(rotation=(0.0, 0.0, 10.0))
    assert mid["head"] == BoneValue(rotation=(0.0, 0.0, 50.0))


def test_rest_pose_releases_overrides(library: ClipLibrary) -> None:
    script = "\n".join(
        [
            "clip full from pirouette 0.0-4.9",
            "pose up",
            "  lShldr rot 0 0 -160",
            "",
            "@1:1 clip full",
            "@1:1 pose up",
            "@2:1 pose rest",
        ]
    )
    out = _expand(script, library)
    source = library.get("pirouette")

    assert _frame(out, 1.0)["lShldr"] == BoneValue(rotation=(0.0, 0.0, -160.0))
    assert _frame(out, 3.0)["lShldr"] == _frame(source, 3.0)["lShldr"]


def test_index_script_lines_tracks_bpm() -> None:
    script = "\n".join(
        [
            "bpm 120",
            "@1:1 clip a",
            "@3:1 clip b",
            "@3:1 pose c",
            "bpm 60",
            "@2:1 clip d",
            "  @1:2 pose e",
        ]
    )
    index = index_script_lines(script)

    assert [(m.time, m.line) for m in index] == [(0.0, 1), (4.0, 2), (4.0, 3), (4.0, 5), (1.0, 6)]
