"""
Robot Configuration for the CRX Kinematics Solvers

A RobotModel is the immutable per-robot configuration handed to every solver at
construction: a 6x4 DHM table, per-joint limits and optional base/tool transforms.

DHM (Modified Denavit-Hartenberg) Parameters, angles in degrees, lengths in mm:
| Link | alpha_{i-1} | a_{i-1} | d_i | theta_i_offset |
|------|-------------|---------|-----|----------------|
| 1    | alpha0      | a0      | d1  | th1_offset     |
| 2    | alpha1      | a1      | d2  | th2_offset     |
| 3    | alpha2      | a2      | d3  | th3_offset     |
| 4    | alpha3      | a3      | d4  | th4_offset     |
| 5    | alpha4      | a4      | d5  | th5_offset     |
| 6    | alpha5      | a5      | d6  | th6_offset     |

Joint angles q (degrees) are mapped to DH angles as theta_i = q_i + theta_i_offset.

FANUC CRX-10iA/L (Abbes & Poisson, 2024 geometric model):
| Link | alpha | a   | d    | offset |
|------|-------|-----|------|--------|
| 1    | 0     | 0   | 0    | 0      |
| 2    | -90   | 0   | 0    | -90    |
| 3    | 180   | 710 | 0    | 0      |
| 4    | -90   | 0   | -540 | 0      |
| 5    | 90    | 0   | 150  | 0      |
| 6    | -90   | 0   | -160 | 0      |
"""

import csv
import itertools
import math
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from utilities import chain_transforms, is_rigid, rigid_inverse, wrap_to_180


_DEFAULT_CRX_LIMITS = [
    [-180.0, 180.0],
    [-180.0, 180.0],
    [-270.0, 270.0],
    [-190.0, 190.0],
    [-180.0, 180.0],
    [-225.0, 225.0],
]


def _read_only(values, shape) -> np.ndarray:
    arr = np.array(values, dtype=float)
    if arr.shape != shape:
        raise ValueError(f"expected array of shape {shape}, got {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class RobotModel:
    """
    Immutable kinematic description of one 6-axis arm.

    Args:
        name: robot identifier
        dhm: 6x4 table [alpha_{i-1} (deg), a_{i-1} (mm), d_i (mm), theta_i_offset (deg)]
        joint_limits: 6x2 table of [min, max] joint angles in degrees
        base: 4x4 world-to-frame-0 transform (TB0), defaults to identity
        tool: 4x4 flange-to-tool transform (T6W), defaults to identity
    """

    name: str
    dhm: np.ndarray
    joint_limits: np.ndarray = field(default_factory=lambda: np.array(_DEFAULT_CRX_LIMITS))
    base: Optional[np.ndarray] = None
    tool: Optional[np.ndarray] = None

    def __post_init__(self):
        dhm = _read_only(self.dhm, (6, 4))
        if not np.all(np.isfinite(dhm)):
            raise ValueError(f"{self.name}: DHM table contains non-finite values")
        limits = _read_only(self.joint_limits, (6, 2))
        if not np.all(np.isfinite(limits)):
            raise ValueError(f"{self.name}: joint limits contain non-finite values")
        if np.any(limits[:, 0] > limits[:, 1]):
            raise ValueError(f"{self.name}: joint limit minimum exceeds maximum")

        base = np.eye(4) if self.base is None else np.array(self.base, dtype=float)
        tool = np.eye(4) if self.tool is None else np.array(self.tool, dtype=float)
        if not is_rigid(base):
            raise ValueError(f"{self.name}: base transform is not a rigid transform")
        if not is_rigid(tool):
            raise ValueError(f"{self.name}: tool transform is not a rigid transform")
        base.setflags(write=False)
        tool.setflags(write=False)

        object.__setattr__(self, 'dhm', dhm)
        object.__setattr__(self, 'joint_limits', limits)
        object.__setattr__(self, 'base', base)
        object.__setattr__(self, 'tool', tool)

    # --- DH columns (radians / mm) ---

    @property
    def alpha(self) -> np.ndarray:
        return np.radians(self.dhm[:, 0])

    @property
    def a(self) -> np.ndarray:
        return np.array(self.dhm[:, 1])

    @property
    def d(self) -> np.ndarray:
        return np.array(self.dhm[:, 2])

    @property
    def theta_offset(self) -> np.ndarray:
        return np.radians(self.dhm[:, 3])

    # --- Named link dimensions ---

    @property
    def shoulder_height(self) -> float:
        return float(self.dhm[0, 2])

    @property
    def upper_arm_length(self) -> float:
        return float(self.dhm[2, 1])

    @property
    def forearm_length(self) -> float:
        """Signed d4 (negative on the CRX, the forearm points back along z4)."""
        return float(self.dhm[3, 2])

    @property
    def wrist_offset(self) -> float:
        """Signed d5, the distance between the joint 4 and joint 6 axes."""
        return float(self.dhm[4, 2])

    @property
    def tool_offset(self) -> float:
        """Signed d6, flange distance from the wrist center along z6."""
        return float(self.dhm[5, 2])

    @property
    def has_spherical_wrist(self) -> bool:
        return abs(self.wrist_offset) < 1e-9

    # --- Joint space conversions ---

    def joints_to_theta(self, joints_deg) -> np.ndarray:
        """Joint angles (deg) -> DH theta values (rad)."""
        return np.radians(np.asarray(joints_deg, dtype=float)) + self.theta_offset

    def theta_to_joints(self, theta_rad) -> np.ndarray:
        """DH theta values (rad) -> joint angles (deg) wrapped into (-180, 180]."""
        return wrap_to_180(np.degrees(np.asarray(theta_rad, dtype=float) - self.theta_offset))

    # --- Forward kinematics ---

    def frames(self, joints_deg, include_base: bool = True) -> List[np.ndarray]:
        """World frames of joints 1..6 (frame i holds joint i's axis z_i and origin o_i)."""
        return chain_transforms(self.alpha, self.a, self.d, self.joints_to_theta(joints_deg),
                                base=self.base if include_base else None)

    def flange_fk(self, joints_deg) -> np.ndarray:
        """T06 in frame 0, without base or tool transform."""
        return self.frames(joints_deg, include_base=False)[-1]

    def fk(self, joints_deg) -> np.ndarray:
        """TBW = TB0 * T06 * T6W."""
        return self.base @ self.flange_fk(joints_deg) @ self.tool

    def target_to_flange(self, TBW: np.ndarray) -> np.ndarray:
        """Strip base and tool: T06 = inv(TB0) * TBW * inv(T6W)."""
        return rigid_inverse(self.base) @ np.asarray(TBW, dtype=float) @ rigid_inverse(self.tool)

    # --- Joint limits ---

    def within_limits(self, joints_deg, tol: float = 1e-9) -> bool:
        q = np.asarray(joints_deg, dtype=float)
        lo, hi = self.joint_limits[:, 0], self.joint_limits[:, 1]
        return bool(np.all(q >= lo - tol) and np.all(q <= hi + tol))

    def turn_equivalents(self, joints_deg, tol: float = 1e-9) -> List[np.ndarray]:
        """
        Every joint vector q + 360*k (integer k per joint) inside the joint limits.

        The first entry holds, per joint, the equivalent nearest to zero (+180 before
        -180), so for limits of at least +/-180 it is the wrapped vector itself. An
        empty list means no turn of the configuration fits the limits.
        """
        per_joint = []
        for q, (lo, hi) in zip(np.asarray(joints_deg, dtype=float), self.joint_limits):
            k_min = math.ceil((lo - tol - q) / 360.0)
            k_max = math.floor((hi + tol - q) / 360.0)
            turns = [q + 360.0 * k for k in range(k_min, k_max + 1)]
            if not turns:
                return []
            per_joint.append(sorted(turns, key=lambda v: (abs(v), v < 0)))
        return [np.array(combo) for combo in itertools.product(*per_joint)]

    def nearest_equivalent(self, joints_deg, reference_deg) -> np.ndarray:
        """In-limits turn of joints_deg closest (raw degrees) to reference_deg."""
        reference = np.asarray(reference_deg, dtype=float)
        candidates = self.turn_equivalents(joints_deg)
        if not candidates:
            return np.array(joints_deg, dtype=float)
        return min(candidates, key=lambda q: float(np.sum(np.abs(q - reference))))

    def clamp_to_limits(self, joints_deg) -> np.ndarray:
        """Clamp each joint whose limits are configured (min < max)."""
        q = np.array(joints_deg, dtype=float)
        for i, (lo, hi) in enumerate(self.joint_limits):
            if lo < hi:
                q[i] = min(max(q[i], lo), hi)
        return q


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def crx_dhm(upper_arm: float, forearm: float, wrist_offset: float, tool_offset: float,
            shoulder_height: float = 0.0) -> np.ndarray:
    """DHM table of the CRX family arm structure (all lengths positive, in mm)."""
    return np.array([
        [0.0,   0.0,       shoulder_height,  0.0],
        [-90.0, 0.0,       0.0,              -90.0],
        [180.0, upper_arm, 0.0,              0.0],
        [-90.0, 0.0,       -forearm,         0.0],
        [90.0,  0.0,       wrist_offset,     0.0],
        [-90.0, 0.0,       -tool_offset,     0.0],
    ])


def crx_10ia_l(**kwargs) -> RobotModel:
    """FANUC CRX-10iA/L: 710 mm upper arm, 540 mm forearm, 150 mm wrist offset."""
    return RobotModel('CRX-10iA/L', crx_dhm(710.0, 540.0, 150.0, 160.0), **kwargs)


def crx_10ia(**kwargs) -> RobotModel:
    """FANUC CRX-10iA: standard arm with a 540 mm upper arm."""
    return RobotModel('CRX-10iA', crx_dhm(540.0, 540.0, 150.0, 160.0), **kwargs)


def crx_10ia_l_spherical(**kwargs) -> RobotModel:
    """CRX-10iA/L arm with the wrist offset folded into a spherical wrist."""
    return RobotModel('CRX-10iA/L-SW', crx_dhm(710.0, 540.0, 0.0, 160.0), **kwargs)


# ---------------------------------------------------------------------------
# CSV robot tables
# ---------------------------------------------------------------------------

def _row_to_model(row: Dict[str, str]) -> RobotModel:
    dhm = [[float(row[f'alpha{i}']), float(row[f'a{i}']), float(row[f'd{i+1}']), float(row[f'th{i+1}'])]
           for i in range(6)]
    limits = [[float(row[f'j{i+1}_min']), float(row[f'j{i+1}_max'])] for i in range(6)]
    return RobotModel(row['classname'], dhm, limits)


def load_robot_models(csv_path: Optional[str] = None) -> Dict[str, RobotModel]:
    """
    Read robot models from a CSV file with one robot per row.

    Columns: classname, alpha0, a0, d1, th1, ..., alpha5, a5, d6, th6 (deg / mm) and
    j1_min, j1_max, ..., j6_min, j6_max (deg). A malformed row raises ValueError.
    """
    if csv_path is None:
        csv_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'robot_models.csv')

    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"CSV file not found at {csv_path}")

    models = {}
    with open(csv_path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                model = _row_to_model(row)
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"{csv_path}:{line_no}: invalid robot row: {e}") from e
            models[model.name] = model
    return models


__all__ = [
    'RobotModel', 'crx_dhm', 'crx_10ia_l', 'crx_10ia', 'crx_10ia_l_spherical',
    'load_robot_models',
]
