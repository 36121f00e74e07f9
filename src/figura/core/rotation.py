from __future__ import annotations

from typing import Literal

import numpy as np


Vec3 = tuple[float, float, float]
Quat = tuple[float, float, float, float]
Axis = Literal["X", "Y", "Z"]

# Quaternions closer than this (|dot|) are blended linearly and renormalized.
SLERP_LINEAR_THRESHOLD = 0.9995


def euler_zxy_to_quat(rot_zxy: Vec3 | list[float] | np.ndarray) -> np.ndarray:
    """Convert a stored `[z, x, y]` Euler triple (degrees) to an xyzw quaternion.

    The rotation matrix is `Rz @ Rx @ Ry` (intrinsic Z-X-Y): Y is applied to
    the vector first, then X, then Z.
    """

    r = np.radians(np.asarray(rot_zxy, dtype=np.float64).reshape(3))
    z, x, y = float(r[0]), float(r[1]), float(r[2])
    c1, s1 = np.cos(x / 2.0), np.sin(x / 2.0)
    c2, s2 = np.cos(y / 2.0), np.sin(y / 2.0)
    c3, s3 = np.cos(z / 2.0), np.sin(z / 2.0)
    return np.array(
        [
            s1 * c2 * c3 - c1 * s2 * s3,
            c1 * s2 * c3 + s1 * c2 * s3,
            c1 * c2 * s3 + s1 * s2 * c3,
            c1 * c2 * c3 - s1 * s2 * s3,
        ],
        dtype=np.float64,
    )


def quat_xyzw_to_matrix(
    q_xyzw: Quat | list[float] | np.ndarray,
) -> np.ndarray:
    q = np.asarray(q_xyzw, dtype=np.float64).reshape(4)
    n = float(np.linalg.norm(q))
    if n < 1e-12:
        raise ValueError("Quaternion norm is too close to zero")
    x, y, z, w = (q / n).tolist()
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array(
        [
            [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
            [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
            [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
        ],
        dtype=np.float64,
    )


def matrix_to_euler_zxy(m: np.ndarray) -> Vec3:
    """Decompose a rotation matrix into a `[z, x, y]` Euler triple (degrees)."""

    m = np.asarray(m, dtype=np.float64)
    m32 = float(np.clip(m[2, 1], -1.0, 1.0))
    ex = np.arcsin(m32)
    if abs(m32) < 0.9999999:
        ey = np.arctan2(-m[2, 0], m[2, 2])
        ez = np.arctan2(-m[0, 1], m[1, 1])
    else:
        # Gimbal lock: fold the whole yaw into Z.
        ey = 0.0
        ez = np.arctan2(m[1, 0], m[0, 0])
    return (float(np.degrees(ez)), float(np.degrees(ex)), float(np.degrees(ey)))


def quat_to_euler_zxy(q_xyzw: Quat | list[float] | np.ndarray) -> Vec3:
    return matrix_to_euler_zxy(quat_xyzw_to_matrix(q_xyzw))


def axis_angle_matrix(axis: Axis, degrees: float) -> np.ndarray:
    a = float(np.radians(degrees))
    c, s = float(np.cos(a)), float(np.sin(a))
    if axis == "X":
        return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]], dtype=np.float64)
    if axis == "Y":
        return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]], dtype=np.float64)
    if axis == "Z":
        return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)
    raise ValueError(f"Unsupported rotation axis: {axis!r}")


def quat_slerp(a: np.ndarray | Quat, b: np.ndarray | Quat, t: float) -> np.ndarray:
    """Shortest-path spherical interpolation between two xyzw quaternions."""

    qa = np.asarray(a, dtype=np.float64).reshape(4)
    qb = np.asarray(b, dtype=np.float64).reshape(4)
    dot = float(np.dot(qa, qb))

    if dot < 0.0:
        qb = -qb
        dot = -dot

    if dot > SLERP_LINEAR_THRESHOLD:
        r = qa + t * (qb - qa)
        return r / np.linalg.norm(r)

    theta = float(np.arccos(dot))
    sin_theta = float(np.sin(theta))
    wa = float(np.sin((1.0 - t) * theta)) / sin_theta
    wb = float(np.sin(t * theta)) / sin_theta
    return wa * qa + wb * qb


def slerp_euler(a: Vec3, b: Vec3, t: float) -> Vec3:
    """Interpolate two `[z, x, y]` triples through quaternion space."""

    q = quat_slerp(euler_zxy_to_quat(a), euler_zxy_to_quat(b), t)
    return quat_to_euler_zxy(q)


def lerp_vec3(a: Vec3, b: Vec3, t: float) -> Vec3:
    return (
        float(a[0] + t * (b[0] - a[0])),
        float(a[1] + t * (b[1] - a[1])),
        float(a[2] + t * (b[2] - a[2])),
    )


def quat_angle_deg(a: np.ndarray | Quat, b: np.ndarray | Quat) -> float:
    """Angle (degrees) of the rotation taking `a` to `b`; q and -q are equal."""

    qa = np.asarray(a, dtype=np.float64).reshape(4)
    qb = np.asarray(b, dtype=np.float64).reshape(4)
    qa = qa / np.linalg.norm(qa)
    qb = qb / np.linalg.norm(qb)
    dot = min(1.0, abs(float(np.dot(qa, qb))))
    return float(np.degrees(2.0 * np.arccos(dot)))
