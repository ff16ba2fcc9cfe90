"""
Arm-plane and wrist geometry shared by the CRX IK solvers.

The CRX family has a vertical shoulder axis, two parallel pitch axes (J2, J3) and a
roll-pitch-roll wrist. Once joint 1 is fixed, the joint-4 origin moves in the vertical
arm plane, so J2/J3 reduce to a two-link planar triangle:

    upper arm  L1 = a2      (frame 2 origin -> frame 3 origin)
    forearm    L2 = |d4|    (frame 3 origin -> frame 4 origin)

Arm-plane coordinates are (r, z): r along x1, z vertical above the shoulder (d1).
With the modified DH table of the CRX,

    x2 = (cos th2, -sin th2)     O3 = a2 * x2
    y3 = (sin(th2 - th3), cos(th2 - th3))     O4 - O3 = d4 * y3
"""

import math
from typing import Optional, Tuple

import numpy as np

from robot_model import RobotModel
from utilities import chain_transforms, clamp_unit, dh_transform


CRX_ALPHA_DEG = np.array([0.0, -90.0, 180.0, -90.0, 90.0, -90.0])


def check_crx_structure(model: RobotModel, spherical: bool) -> None:
    """
    Reject models whose DHM table does not have the CRX joint layout.

    spherical=True requires d5 == 0 (closed-form solver), False requires d5 != 0
    (geometric redundancy-scan solver).
    """
    dhm = model.dhm
    if np.any(np.abs(dhm[:, 0] - CRX_ALPHA_DEG) > 1e-9):
        raise ValueError(f"{model.name}: twist angles {list(dhm[:, 0])} do not match the CRX layout")
    a = dhm[:, 1]
    if a[2] <= 0 or np.any(np.abs(np.delete(a, 2)) > 1e-9):
        raise ValueError(f"{model.name}: only a2 may be non-zero and it must be positive")
    if abs(dhm[1, 2]) > 1e-9 or abs(dhm[2, 2]) > 1e-9:
        raise ValueError(f"{model.name}: d2 and d3 must be zero")
    if abs(model.forearm_length) < 1e-9:
        raise ValueError(f"{model.name}: forearm length d4 must be non-zero")
    if spherical and not model.has_spherical_wrist:
        raise ValueError(f"{model.name}: closed-form solver needs a spherical wrist (d5 = 0)")
    if not spherical and model.has_spherical_wrist:
        raise ValueError(f"{model.name}: wrist offset d5 must be non-zero")


def shoulder_headings(point) -> Tuple[float, float]:
    """J1 DH angles facing the point (front) and facing away from it (back)."""
    front = math.atan2(point[1], point[0])
    return front, front + math.pi


def solve_arm_plane(model: RobotModel, point, theta1: float, elbow: int,
                    reach_tol: float = 1e-6) -> Optional[Tuple[float, float]]:
    """
    DH angles (theta2, theta3) in radians placing the joint-4 origin at ``point``.

    ``elbow`` is +1 (upper arm above the shoulder-to-point line) or -1. Returns None
    when the point is out of reach of the planar triangle by more than reach_tol.
    """
    c1, s1 = math.cos(theta1), math.sin(theta1)
    r = c1 * point[0] + s1 * point[1]
    z = point[2] - model.shoulder_height

    L1 = model.upper_arm_length
    d4 = model.forearm_length
    L2 = abs(d4)
    D = math.hypot(r, z)
    if D > L1 + L2 + reach_tol or D < abs(L1 - L2) - reach_tol or D < 1e-12:
        return None

    gamma = math.acos(clamp_unit((L1 * L1 + D * D - L2 * L2) / (2.0 * L1 * D)))
    angle = math.atan2(z, r) + elbow * gamma
    u_r, u_z = L1 * math.cos(angle), L1 * math.sin(angle)

    theta2 = math.atan2(-u_z, u_r)
    delta = math.atan2((r - u_r) / d4, (z - u_z) / d4)
    return theta2, theta2 - delta


def elbow_point(model: RobotModel, theta1: float, theta2: float) -> np.ndarray:
    """Frame-3 origin (the elbow) in frame 0."""
    L1 = model.upper_arm_length
    c1, s1 = math.cos(theta1), math.sin(theta1)
    r = L1 * math.cos(theta2)
    return np.array([r * c1, r * s1, model.shoulder_height - L1 * math.sin(theta2)])


def arm_frame(model: RobotModel, theta1: float, theta2: float, theta3: float) -> np.ndarray:
    """T03 for the given DH angles (frame 0, no base transform)."""
    return chain_transforms(model.alpha[:3], model.a[:3], model.d[:3], [theta1, theta2, theta3])[-1]


def wrist_roll_from_axis(T03: np.ndarray, z5) -> float:
    """theta4 that turns z5 (frame 0) into place: z5 in frame 3 is (sin th4, 0, cos th4)."""
    v = T03[:3, :3].T @ np.asarray(z5, dtype=float)
    return math.atan2(v[0], v[2])


def wrist_frame(model: RobotModel, T03: np.ndarray, theta4: float) -> np.ndarray:
    return T03 @ dh_transform(model.alpha[3], model.a[3], model.d[3], theta4)


def wrist_pitch_roll(T04: np.ndarray, R06: np.ndarray) -> Tuple[float, float]:
    """
    theta5, theta6 from R46 = R04^T R06.

    R46 = [[c5c6, -c5s6, -s5], [s6, c6, 0], [s5c6, -s5s6, c5]]
    """
    R46 = T04[:3, :3].T @ R06
    theta5 = math.atan2(-R46[0, 2], R46[2, 2])
    theta6 = math.atan2(R46[1, 0], R46[1, 1])
    return theta5, theta6
