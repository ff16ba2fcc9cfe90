"""
KINEMATICS FACADE FOR THE FANUC CRX COLLABORATIVE ARMS

Wraps a RobotModel with the matching discrete IK solver, the DLS tick solver, the
solution selection policy and the host boundary conventions:

- offset wrist (d5 != 0, the real CRX)  -> GeometricIKSolver
- spherical wrist (d5 == 0)             -> AnalyticalIKSolver

Joint angles are degrees in the solver joint space unless a method says "native".
Positions are millimetres.

Author: CRX kinematics contributors
Date: October 17, 2026
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from dls_solver import DampedLeastSquaresIKSolver
from ik_6r_spherical_solver import AnalyticalIKSolver
from ik_crx_geometric_solver import GeometricIKSolver
from joint_conventions import (
    IDENTITY,
    BoundaryConventions,
    native_to_solver_joints,
    solver_to_native_joints,
)
from orientation import pose_to_transform
from robot_model import RobotModel
from solution_selection import SelectionMode, select_best


class FanucCRX:
    """
    Forward and inverse kinematics of one CRX model.

    Args:
        model: RobotModel (CRX layout, offset or spherical wrist)
        conventions: host boundary conventions (native J3 coupling, display units)
        verbose: print solver diagnostics
        **solver_kwargs: passed through to the discrete IK solver
    """

    def __init__(self, model: RobotModel, conventions: BoundaryConventions = IDENTITY,
                 verbose: bool = False, **solver_kwargs):
        self.model = model
        self.conventions = conventions
        self.verbose = verbose
        if model.has_spherical_wrist:
            self.solver = AnalyticalIKSolver(model, verbose=verbose, **solver_kwargs)
        else:
            self.solver = GeometricIKSolver(model, verbose=verbose, **solver_kwargs)
        self.dls = DampedLeastSquaresIKSolver(model, verbose=verbose)

        if verbose:
            print(f"Initialized FanucCRX kinematics for {model.name}:")
            print(f"  IK solver: {type(self.solver).__name__}")
            print(f"  a2={model.upper_arm_length:.1f}, d4={model.forearm_length:.1f}, "
                  f"d5={model.wrist_offset:.1f}, d6={model.tool_offset:.1f} mm")

    def FK(self, joint: Sequence[float]) -> np.ndarray:
        """TBW for joint angles in degrees."""
        return self.model.fk(joint)

    def IK(self, TBW: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Solve inverse kinematics for target pose TBW.

        Returns:
            Tuple (solutions, wrongSolutions):
            - solutions: Nx6 array of verified solutions in degrees
            - wrongSolutions: Mx6 array of candidates that failed FK or joint-limit checks
        """
        valid, rejects = self.solver.solve_with_rejects(TBW)
        solutions = np.array([s.joints for s in valid]) if valid else np.empty((0, 6))
        wrongSolutions = np.array([s.joints for s in rejects]) if rejects else np.empty((0, 6))
        return solutions, wrongSolutions

    def IK_pose(self, xyz, wpr) -> Tuple[np.ndarray, np.ndarray]:
        """IK for a position (mm) and FANUC W/P/R (deg)."""
        return self.IK(pose_to_transform(xyz, wpr, negate_pitch_roll=self.conventions.negate_pitch_roll))

    def select(self, solutions, current_joints, mode: SelectionMode = SelectionMode.AUTO,
               manual_index: int = 0) -> Optional[np.ndarray]:
        """Selected solution, moved to the in-limits joint turn nearest current_joints."""
        best = select_best(solutions, current_joints, mode, manual_index)
        if best is None:
            return None
        return self.model.nearest_equivalent(best, current_joints)

    def move_to(self, TBW: np.ndarray, current_joints, mode: SelectionMode = SelectionMode.AUTO,
                manual_index: int = 0) -> np.ndarray:
        """
        Joint vector for TBW chosen from all IK solutions.

        Falls back to current_joints (last known good pose) when the target is unreachable.
        """
        solutions, _ = self.IK(TBW)
        best = self.select(solutions, current_joints, mode, manual_index)
        if best is None:
            if self.verbose:
                print("No solution found, keeping the current joint state")
            return np.array(current_joints, dtype=float)
        return best

    def tick(self, TBW: np.ndarray, current_joints) -> np.ndarray:
        """One damped least-squares step toward TBW."""
        return self.dls.tick(TBW, current_joints)

    def to_native(self, joints) -> np.ndarray:
        return solver_to_native_joints(joints, self.conventions)

    def from_native(self, joints) -> np.ndarray:
        return native_to_solver_joints(joints, self.conventions)
