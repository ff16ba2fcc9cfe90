"""
Boundary Conventions between the Kinematics Core and its Hosts

The solvers work in one kinematic joint space (DH angles minus offsets, degrees) and in
millimetres. Hosts differ:

- FANUC controllers report J3 relative to J2 (native J3 = q3 - q2).
- Rendering engines may use a mirrored X axis and metres or decimetres. Mirroring
  negates X of positions and conjugates rotations by the same reflection.
- Some calibrations read W/P/R as (W, -P, -R).

All of this is collected in one BoundaryConventions record. The J2/J3 coupling is
applied only here.
"""

from dataclasses import dataclass

import numpy as np

from orientation import pose_to_transform, transform_to_pose
from utilities import make_transform


@dataclass(frozen=True)
class BoundaryConventions:
    """
    Args:
        couple_j3: native J3 is measured from J2 (FANUC convention)
        mirror_x: display frame has the X axis negated
        length_scale: model millimetres per display unit (1000 = metres, 100 = decimetres)
        negate_pitch_roll: display W/P/R is (W, -P, -R)
    """

    couple_j3: bool = False
    mirror_x: bool = False
    length_scale: float = 1.0
    negate_pitch_roll: bool = False

    def __post_init__(self):
        if not self.length_scale > 0:
            raise ValueError(f"length_scale must be positive, got {self.length_scale}")


IDENTITY = BoundaryConventions()
UNITY_METRES = BoundaryConventions(couple_j3=True, mirror_x=True, length_scale=1000.0)
UNITY_DECIMETRES = BoundaryConventions(couple_j3=True, mirror_x=True, length_scale=100.0)


def native_to_solver_joints(joints, conventions: BoundaryConventions = IDENTITY) -> np.ndarray:
    q = np.array(joints, dtype=float)
    if conventions.couple_j3:
        q[2] = q[2] + q[1]
    return q


def solver_to_native_joints(joints, conventions: BoundaryConventions = IDENTITY) -> np.ndarray:
    q = np.array(joints, dtype=float)
    if conventions.couple_j3:
        q[2] = q[2] - q[1]
    return q


def _mirror(conventions: BoundaryConventions) -> np.ndarray:
    return np.array([-1.0 if conventions.mirror_x else 1.0, 1.0, 1.0])


def _reflect_rotation(R, conventions: BoundaryConventions) -> np.ndarray:
    """M R M with M = diag(mirror); for W/P/R this is (W, -P, -R) when mirrored."""
    M = np.diag(_mirror(conventions))
    return M @ np.asarray(R, dtype=float)[:3, :3] @ M


def native_to_display_position(p_mm, conventions: BoundaryConventions = IDENTITY) -> np.ndarray:
    """Model position (mm) -> display units, mirrored when configured."""
    return np.asarray(p_mm, dtype=float) * _mirror(conventions) / conventions.length_scale


def display_to_native_position(p_display, conventions: BoundaryConventions = IDENTITY) -> np.ndarray:
    return np.asarray(p_display, dtype=float) * _mirror(conventions) * conventions.length_scale


def display_pose_to_transform(xyz, wpr, conventions: BoundaryConventions = IDENTITY) -> np.ndarray:
    """Display position and W/P/R -> model transform (mm)."""
    shown = pose_to_transform(xyz, wpr, negate_pitch_roll=conventions.negate_pitch_roll)
    return make_transform(_reflect_rotation(shown, conventions),
                          display_to_native_position(xyz, conventions))


def transform_to_display_pose(T, conventions: BoundaryConventions = IDENTITY):
    """Model transform (mm) -> display position and W/P/R."""
    T = np.asarray(T, dtype=float)
    shown = make_transform(_reflect_rotation(T, conventions), T[:3, 3])
    _, wpr = transform_to_pose(shown, negate_pitch_roll=conventions.negate_pitch_roll)
    return native_to_display_position(T[:3, 3], conventions), wpr
