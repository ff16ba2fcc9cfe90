"""Solution record and solver interfaces shared by the CRX IK solvers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import numpy as np

from robot_model import RobotModel
from utilities import make_transform, pose_error


POSITION_TOLERANCE = 1e-3   # mm
ROTATION_TOLERANCE = 1e-3   # Frobenius norm of the rotation difference


@dataclass(frozen=True, eq=False)
class IKSolution:
    """One candidate joint vector (degrees, solver joint space).

    ``is_valid`` is False when the candidate failed a reachability, joint-limit or
    forward-kinematics check. ``branch`` names the configuration it came from
    (e.g. ``"front/up/flip"``), ``residual`` is the closure residual for the
    geometric solver and the FK position error for the analytical one.
    """

    joints: np.ndarray
    is_valid: bool = True
    branch: str = ""
    residual: float = 0.0

    def __post_init__(self):
        joints = np.array(self.joints, dtype=float)
        if joints.shape != (6,):
            raise ValueError(f"IKSolution needs 6 joint angles, got shape {joints.shape}")
        joints.setflags(write=False)
        object.__setattr__(self, 'joints', joints)


class IKSolver(ABC):
    """Discrete solver: target pose -> all valid joint configurations."""

    def __init__(self, model: RobotModel):
        self.model = model

    @abstractmethod
    def solve_transform(self, TBW: np.ndarray) -> List[IKSolution]:
        ...

    def solve(self, target, target_orientation=None) -> List[IKSolution]:
        """
        Solve for a 4x4 target transform, or for a position (mm) plus a 3x3 rotation.
        """
        if target_orientation is None:
            return self.solve_transform(np.asarray(target, dtype=float))
        R = np.asarray(target_orientation, dtype=float)[:3, :3]
        return self.solve_transform(make_transform(R, np.asarray(target, dtype=float)))


class IterativeIKSolver(ABC):
    """Incremental solver called once per control tick."""

    def __init__(self, model: RobotModel):
        self.model = model

    @abstractmethod
    def tick(self, TBW: np.ndarray, current_joints) -> np.ndarray:
        ...


def with_turn_equivalents(model: RobotModel, solutions: List[IKSolution]) -> List[IKSolution]:
    """Each solution followed by its other in-limits +/-360 deg joint turns."""
    expanded: List[IKSolution] = []
    for s in solutions:
        for q in model.turn_equivalents(s.joints):
            expanded.append(IKSolution(q, s.is_valid, s.branch, s.residual))
    return expanded


def verify_solution(model: RobotModel, joints, TBW: np.ndarray,
                    pos_tol: float = POSITION_TOLERANCE, rot_tol: float = ROTATION_TOLERANCE):
    """
    Forward-kinematics check of a candidate.

    Returns (ok, pos_error, rot_error).
    """
    pos_err, rot_err = pose_error(model.fk(joints), TBW)
    return pos_err < pos_tol and rot_err < rot_tol, pos_err, rot_err
