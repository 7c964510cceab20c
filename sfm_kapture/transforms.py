"""
Rotation representation conversions for pose export.

kapture stores orientations as unit quaternions (qw, qx, qy, qz) while the
scene stores 3x3 rotation matrices. Both describe the same world-to-camera
rotation; no change of frame happens here.

Quaternion Conventions:
    - Hamilton convention, scalar first: q = (w, x, y, z)
    - q and -q describe the same rotation; outputs are canonicalized
      so that w >= 0
"""

import numpy as np
import logging

logger = logging.getLogger(__name__)


def rotation_matrix_to_quaternion(R: np.ndarray) -> np.ndarray:
    """
    Convert a rotation matrix to a unit quaternion.

    The largest of {trace, R00, R11, R22} selects which quaternion
    component is recovered first through a square root. That component
    is at least 1/2 in magnitude, so dividing by it to obtain the other
    three stays well conditioned for every rotation angle, including
    rotations close to 180 degrees where 1 + trace approaches 0.

    Args:
        R: 3x3 orthonormal rotation matrix

    Returns:
        Quaternion as array (w, x, y, z) with unit norm and w >= 0
    """
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 matrix, got shape {R.shape}")

    trace = R[0, 0] + R[1, 1] + R[2, 2]
    branch = int(np.argmax([trace, R[0, 0], R[1, 1], R[2, 2]]))

    if branch == 0:
        s = 2.0 * np.sqrt(1.0 + trace)  # s = 4w
        q = np.array([
            0.25 * s,
            (R[2, 1] - R[1, 2]) / s,
            (R[0, 2] - R[2, 0]) / s,
            (R[1, 0] - R[0, 1]) / s,
        ])
    elif branch == 1:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])  # s = 4x
        q = np.array([
            (R[2, 1] - R[1, 2]) / s,
            0.25 * s,
            (R[0, 1] + R[1, 0]) / s,
            (R[0, 2] + R[2, 0]) / s,
        ])
    elif branch == 2:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])  # s = 4y
        q = np.array([
            (R[0, 2] - R[2, 0]) / s,
            (R[0, 1] + R[1, 0]) / s,
            0.25 * s,
            (R[1, 2] + R[2, 1]) / s,
        ])
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])  # s = 4z
        q = np.array([
            (R[1, 0] - R[0, 1]) / s,
            (R[0, 2] + R[2, 0]) / s,
            (R[1, 2] + R[2, 1]) / s,
            0.25 * s,
        ])

    q /= np.linalg.norm(q)
    if q[0] < 0:
        q = -q
    return q


def quaternion_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    """
    Convert a quaternion (w, x, y, z) to a rotation matrix.

    The quaternion is normalized first.
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if norm == 0:
        raise ValueError("Cannot convert a zero quaternion")
    w, x, y, z = q / norm

    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
        [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
        [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
    ])


def validate_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """True if R is a 3x3 orthonormal matrix with determinant +1."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        return False
    orthonormal = np.allclose(R @ R.T, np.eye(3), atol=tol)
    return bool(orthonormal and abs(np.linalg.det(R) - 1.0) <= tol)
