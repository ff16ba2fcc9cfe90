"""
FANUC W/P/R Euler Angles and Quaternions

W rotates about X, P about Y and R about Z, all in degrees and about fixed axes:

    R = Rz(R) * Ry(P) * Rx(W)

which is scipy's extrinsic ``'xyz'`` sequence. Quaternions are (x, y, z, w).

Some calibrated setups mirror pitch and roll; ``negate_pitch_roll=True`` reads and
writes (W, -P, -R) instead.
"""

import math
from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from utilities import clamp_unit


def wpr_to_quaternion(w: float, p: float, r: float, negate_pitch_roll: bool = False) -> np.ndarray:
    """W/P/R (deg) -> unit quaternion (x, y, z, w) using the half-angle formula."""
    if negate_pitch_roll:
        p, r = -p, -r
    hw, hp, hr = math.radians(w) / 2.0, math.radians(p) / 2.0, math.radians(r) / 2.0
    cW, sW = math.cos(hw), math.sin(hw)
    cP, sP = math.cos(hp), math.sin(hp)
    cR, sR = math.cos(hr), math.sin(hr)

    return np.array([
        cR * cP * sW - sR * sP * cW,
        cR * sP * cW + sR * cP * sW,
        sR * cP * cW - cR * sP * sW,
        cR * cP * cW + sR * sP * sW,
    ])


def quaternion_to_wpr(q, negate_pitch_roll: bool = False) -> Tuple[float, float, float]:
    """
    Quaternion (x, y, z, w) -> W/P/R (deg).

    Exact inverse of wpr_to_quaternion away from gimbal lock (|P| < 89 deg). At
    P = +-90 deg only W +- R is defined and the split is arbitrary.
    """
    x, y, z, w = np.asarray(q, dtype=float) / np.linalg.norm(q)
    W = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
    P = math.asin(clamp_unit(2.0 * (w * y - z * x)))
    R = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    W, P, R = math.degrees(W), math.degrees(P), math.degrees(R)
    if negate_pitch_roll:
        P, R = -P, -R
    return W, P, R


def wpr_to_matrix(w: float, p: float, r: float) -> np.ndarray:
    return Rotation.from_euler('xyz', [w, p, r], degrees=True).as_matrix()


def matrix_to_wpr(R: np.ndarray) -> Tuple[float, float, float]:
    w, p, r = Rotation.from_matrix(np.asarray(R, dtype=float)[:3, :3]).as_euler('xyz', degrees=True)
    return float(w), float(p), float(r)


def pose_to_transform(xyz, wpr, negate_pitch_roll: bool = False) -> np.ndarray:
    """Position (mm) and W/P/R (deg) -> 4x4 transform."""
    w, p, r = wpr
    if negate_pitch_roll:
        p, r = -p, -r
    T = np.eye(4)
    T[:3, :3] = wpr_to_matrix(w, p, r)
    T[:3, 3] = np.asarray(xyz, dtype=float)
    return T


def transform_to_pose(T: np.ndarray, negate_pitch_roll: bool = False) -> Tuple[np.ndarray, Tuple[float, float, float]]:
    """4x4 transform -> (position, (W, P, R))."""
    w, p, r = matrix_to_wpr(T)
    if negate_pitch_roll:
        p, r = -p, -r
    return np.array(T[:3, 3], dtype=float), (w, p, r)
