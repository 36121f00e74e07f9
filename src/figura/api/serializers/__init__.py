from __future__ import annotations

from .clips import (
    compiled_clip_to_dict,
    example_to_dict,
    example_to_list_item,
    line_markers_to_list,
    sampled_pose_to_dict,
    track_to_dict,
)

__all__ = [
    "track_to_dict",
    "compiled_clip_to_dict",
    "sampled_pose_to_dict",
    "line_markers_to_list",
    "example_to_list_item",
    "example_to_dict",
]
