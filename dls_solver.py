"""
Damped Least-Squares (DLS) Iterative IK

One call to tick() moves the current joint vector one damped Gauss-Newton step toward
the target pose:

    e  = [p_t - p_c (m); rotvec(R_t R_c^T)]
    J  = [z_i x (p_ee - o_i); z_i]                 (6 x 6, from the live joint frames)
    dq = J^T (J J^T + lambda^2 I)^-1 e
    q' = clamp(q + learning_rate * dq)

Positions are scaled to metres (length_scale) so that the damping term weighs
translation and rotation on a comparable scale. The solver keeps no state between
ticks; the caller owns the joint vector.
"""

import math
from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from ik_solution import IterativeIKSolver
from robot_model import RobotModel
from utilities import wrap_to_180


class DampedLeastSquaresIKSolver(IterativeIKSolver):
    """
    Per-tick DLS solver.

    Args:
        model: RobotModel (any 6-joint DH chain)
        learning_rate: fraction of the DLS step applied per tick
        damping: lambda in J^T (J J^T + lambda^2 I)^-1
        stop_threshold: position error (m) below which a tick is a no-op
        angle_threshold_deg: orientation error (deg) below which a tick is a no-op
        length_scale: factor converting model lengths (mm) to metres
        singularity_threshold_deg: |J5| below this is reported as near a wrist singularity
        verbose: print per-tick diagnostics
    """

    def __init__(self, model: RobotModel, learning_rate: float = 0.8, damping: float = 0.05,
                 stop_threshold: float = 0.001, angle_threshold_deg: float = 0.5,
                 length_scale: float = 0.001, singularity_threshold_deg: float = 2.0,
                 verbose: bool = False):
        if learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {learning_rate}")
        if damping < 0:
            raise ValueError(f"damping must be non-negative, got {damping}")
        if length_scale <= 0:
            raise ValueError(f"length_scale must be positive, got {length_scale}")
        super().__init__(model)
        self.learning_rate = learning_rate
        self.damping = damping
        self.stop_threshold = stop_threshold
        self.angle_threshold_deg = angle_threshold_deg
        self.length_scale = length_scale
        self.singularity_threshold_deg = singularity_threshold_deg
        self.verbose = verbose

    def error_vector(self, TBW: np.ndarray, joints) -> np.ndarray:
        """6-vector [position error (m); rotation vector (rad)] from current to target."""
        T_c = self.model.fk(joints)
        dp = (np.asarray(TBW, dtype=float)[:3, 3] - T_c[:3, 3]) * self.length_scale
        dR = np.asarray(TBW, dtype=float)[:3, :3] @ T_c[:3, :3].T
        rotvec = Rotation.from_matrix(dR).as_rotvec()
        return np.concatenate([dp, rotvec])

    def jacobian(self, joints) -> np.ndarray:
        """Geometric Jacobian (6 x 6): linear rows in m/rad, angular rows in rad/rad."""
        frames = self.model.frames(joints)
        p_ee = (frames[-1] @ self.model.tool)[:3, 3]
        J = np.zeros((6, len(frames)))
        for i, T in enumerate(frames):
            z_i = T[:3, 2]
            o_i = T[:3, 3]
            J[:3, i] = np.cross(z_i, p_ee - o_i) * self.length_scale
            J[3:, i] = z_i
        return J

    def is_converged(self, TBW: np.ndarray, joints) -> bool:
        e = self.error_vector(TBW, joints)
        return (np.linalg.norm(e[:3]) < self.stop_threshold
                and math.degrees(np.linalg.norm(e[3:])) < self.angle_threshold_deg)

    def near_singularity(self, joints) -> bool:
        """True when J5 is close to zero (J4 and J6 axes nearly aligned)."""
        return abs(float(wrap_to_180(joints[4]))) < self.singularity_threshold_deg

    def tick(self, TBW: np.ndarray, current_joints) -> np.ndarray:
        """One DLS step from current_joints (deg); returns the new joint vector (deg)."""
        q = np.array(current_joints, dtype=float)
        e = self.error_vector(TBW, q)
        pos_err = np.linalg.norm(e[:3])
        ang_err = math.degrees(np.linalg.norm(e[3:]))
        if pos_err < self.stop_threshold and ang_err < self.angle_threshold_deg:
            return q

        J = self.jacobian(q)
        A = J @ J.T + (self.damping ** 2) * np.eye(6)
        try:
            y = np.linalg.solve(A, e)
        except np.linalg.LinAlgError:
            y = np.linalg.lstsq(A, e, rcond=None)[0]
        dq = np.degrees(J.T @ y)

        q_new = self.model.clamp_to_limits(q + self.learning_rate * dq)
        if self.verbose:
            flag = " (near wrist singularity)" if self.near_singularity(q) else ""
            print(f"DLS tick: pos_err={pos_err * 1000.0:.3f} mm, ang_err={ang_err:.3f} deg{flag}")
        return q_new

    def solve(self, TBW: np.ndarray, initial_joints, max_ticks: int = 200) -> Tuple[np.ndarray, bool]:
        """Run ticks until the error is below both thresholds; returns (joints, converged)."""
        q = np.array(initial_joints, dtype=float)
        for _ in range(max_ticks):
            if self.is_converged(TBW, q):
                return q, True
            q = self.tick(TBW, q)
        return q, self.is_converged(TBW, q)
