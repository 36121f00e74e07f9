from __future__ import annotations

from .bvh import BvhData, BvhJoint, load_bvh, parse_bvh

__all__ = [
    "BvhData",
    "BvhJoint",
    "load_bvh",
    "parse_bvh",
]
