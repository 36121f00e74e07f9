from __future__ import annotations

from typing import Any

from ...core.codec import LineMarker
from ...core.examples import Example
from ...core.keyframes import CompiledClip, SampledBone, Track


def track_to_dict(tr: Track) -> dict[str, Any]:
    return {
        "name": tr.name,
        "bone": tr.bone,
        "kind": tr.kind,
        "times": [float(t) for t in tr.times],
        "values": [[float(v) for v in row] for row in tr.values],
    }


def compiled_clip_to_dict(clip: CompiledClip, *, revision: int | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": clip.name,
        "duration": float(clip.duration),
        "bones": clip.bones(),
        "tracks": [track_to_dict(tr) for tr in clip.tracks],
    }
    if revision is not None:
        out["revision"] = int(revision)
    return out


def sampled_pose_to_dict(pose: dict[str, SampledBone]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name, bone in pose.items():
        item: dict[str, Any] = {}
        if bone.quaternion is not None:
            item["quaternion"] = [float(v) for v in bone.quaternion]
            item["rotation"] = [float(v) for v in bone.rotation]  # type: ignore[union-attr]
        if bone.position is not None:
            item["position"] = [float(v) for v in bone.position]
        out[name] = item
    return out


def line_markers_to_list(index: list[LineMarker]) -> list[dict[str, Any]]:
    return [{"time": float(m.time), "line": int(m.line)} for m in index]


def example_to_list_item(ex: Example) -> dict[str, Any]:
    return {"id": ex.id, "title": ex.title}


def example_to_dict(ex: Example) -> dict[str, Any]:
    return {"id": ex.id, "title": ex.title, "script": ex.script}
