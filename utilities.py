"""
Spatial Math, DH Matrices and Angle Helpers for the CRX Kinematics Solvers

This module provides the double-precision building blocks shared by every solver:
rigid transforms, screw motions, modified Denavit-Hartenberg link matrices, chained
forward kinematics and angle bookkeeping.

Vectors are numpy arrays of shape (3,), transforms are numpy arrays of shape (4, 4).
Lengths are millimeters, angles inside this module are radians unless a function
name says otherwise (``*_deg``).

Author: CRX kinematics contributors
Date: October 17, 2026
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation


# ---------------------------------------------------------------------------
# Vectors and rigid transforms
# ---------------------------------------------------------------------------

def magnitude(v) -> float:
    """Euclidean length of a 3-vector."""
    return float(np.linalg.norm(v))


def normalized(v) -> np.ndarray:
    """
    Unit vector along v.

    A zero vector is returned unchanged (no divide-by-zero), so callers that need a
    true unit vector must check the magnitude themselves.
    """
    v = np.asarray(v, dtype=float)
    m = np.linalg.norm(v)
    if m > 0:
        return v / m
    return v


def make_transform(R: Optional[np.ndarray] = None, p: Optional[Sequence[float]] = None) -> np.ndarray:
    """Build a 4x4 homogeneous transform from a rotation block and a translation."""
    T = np.eye(4)
    if R is not None:
        T[:3, :3] = R
    if p is not None:
        T[:3, 3] = p
    return T


def transform_point(T: np.ndarray, p) -> np.ndarray:
    """Apply rotation + translation of T to point p (the bottom row is ignored)."""
    return T[:3, :3] @ np.asarray(p, dtype=float) + T[:3, 3]


def rigid_inverse(T: np.ndarray) -> np.ndarray:
    """
    Inverse of a rigid transform.

    R' = R^T, p' = -R^T p. Only valid when the rotation block is orthonormal; a
    non-rigid input silently produces a wrong (but finite) result.
    """
    R_t = T[:3, :3].T
    Ti = np.eye(4)
    Ti[:3, :3] = R_t
    Ti[:3, 3] = -R_t @ T[:3, 3]
    return Ti


def is_rigid(T: np.ndarray, tol: float = 1e-6) -> bool:
    """True when T is a 4x4 proper rigid transform."""
    T = np.asarray(T, dtype=float)
    if T.shape != (4, 4) or not np.all(np.isfinite(T)):
        return False
    R = T[:3, :3]
    if np.linalg.norm(R.T @ R - np.eye(3)) > tol:
        return False
    if abs(np.linalg.det(R) - 1.0) > tol:
        return False
    return np.allclose(T[3], [0.0, 0.0, 0.0, 1.0], atol=tol)


def pose_error(T_a: np.ndarray, T_b: np.ndarray) -> Tuple[float, float]:
    """Position error (mm) and Frobenius rotation error between two poses."""
    pos_error = float(np.linalg.norm(T_a[:3, 3] - T_b[:3, 3]))
    rot_error = float(np.linalg.norm(T_a[:3, :3] - T_b[:3, :3], 'fro'))
    return pos_error, rot_error


# ---------------------------------------------------------------------------
# Screw motions and DH matrices
# ---------------------------------------------------------------------------

def ScrewX(a, alpha):
    """
    Screw motion along X-axis: Translation by 'a' along X, then rotation by 'alpha' about X.

    ScrewX(a, alpha) = Trans_x(a) * Rot_x(alpha)
    """
    T = np.eye(4)
    T[:3, :3] = Rotation.from_euler('x', alpha).as_matrix()
    T[0, 3] = a
    return T


def ScrewZ(d, theta):
    """
    Screw motion along Z-axis: Translation by 'd' along Z, then rotation by 'theta' about Z.

    ScrewZ(d, theta) = Trans_z(d) * Rot_z(theta)
    """
    T = np.eye(4)
    T[:3, :3] = Rotation.from_euler('z', theta).as_matrix()
    T[2, 3] = d
    return T


def dh_transform(alpha, a, d, theta):
    """
    Modified DH link transform.

    T = Rot(X, alpha) * Trans(X, a) * Rot(Z, theta) * Trans(Z, d)
      = ScrewX(a, alpha) * ScrewZ(d, theta)
    """
    ca, sa = math.cos(alpha), math.sin(alpha)
    ct, st = math.cos(theta), math.sin(theta)

    return np.array([
        [ct, -st, 0.0, a],
        [st*ca, ct*ca, -sa, -sa*d],
        [st*sa, ct*sa, ca, ca*d],
        [0.0, 0.0, 0.0, 1.0]
    ])


def dh_transform_inverse(alpha, a, d, theta):
    """
    Analytical inverse of a DH link transform using the screw decomposition.

    DH^(-1) = ScrewZ^(-1)(d, theta) * ScrewX^(-1)(a, alpha)
            = ScrewZ(-d, -theta) * ScrewX(-a, -alpha)
    """
    return ScrewZ(-d, -theta) @ ScrewX(-a, -alpha)


def chain_transforms(alpha: Sequence[float], a: Sequence[float], d: Sequence[float],
                     theta: Sequence[float], base: Optional[np.ndarray] = None) -> List[np.ndarray]:
    """
    Cumulative frames of a DH chain.

    Returns [T01, T02, ..., T0n] (each premultiplied by ``base`` when given), so the
    forward kinematics of any joint prefix is available from one pass.
    """
    T = np.eye(4) if base is None else np.array(base, dtype=float)
    frames = []
    for i in range(len(theta)):
        T = T @ dh_transform(alpha[i], a[i], d[i], theta[i])
        frames.append(T)
    return frames


def forward_kinematics(alpha, a, d, theta):
    """Base-to-flange transform T0n of a DH chain."""
    return chain_transforms(alpha, a, d, theta)[-1]


# ---------------------------------------------------------------------------
# Angles
# ---------------------------------------------------------------------------

def wrap_to_pi(angle):
    """Wrap angle(s) in radians into (-pi, pi]."""
    return np.pi - np.mod(np.pi - np.asarray(angle, dtype=float), 2.0 * np.pi)


def wrap_to_180(angle_deg):
    """Wrap angle(s) in degrees into (-180, 180]."""
    return 180.0 - np.mod(180.0 - np.asarray(angle_deg, dtype=float), 360.0)


def angle_difference_deg(a, b):
    """Absolute wrapped difference between angle(s) in degrees, in [0, 180]."""
    diff = np.abs(np.mod(np.asarray(a, dtype=float) - np.asarray(b, dtype=float), 360.0))
    return np.minimum(diff, 360.0 - diff)


def clamp_unit(x: float) -> float:
    """Clamp an acos/asin argument into [-1, 1]."""
    return max(-1.0, min(1.0, x))


def deduplicate_joint_sets(solutions: List, tol_deg: float = 1e-4, key=None) -> List:
    """
    Remove joint vectors (degrees) that repeat an earlier one within tol_deg.

    ``key`` extracts the joint vector from each item when the list holds records
    rather than bare arrays. The first occurrence wins.
    """
    if key is None:
        key = np.asarray
    unique: List = []
    for sol in solutions:
        q = key(sol)
        if not any(np.all(angle_difference_deg(q, key(u)) < tol_deg) for u in unique):
            unique.append(sol)
    return unique
