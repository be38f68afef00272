"""
Math Utilities Module

This module provides helper functions for validating and converting the
array-like inputs accepted across the beam-grid simulator: 3D vectors,
3x3 rotation matrices, 4x4 homogeneous transforms, and 1D angle sequences.

All functions convert their input to float64 numpy arrays and raise a
ValueError naming the offending parameter when the shape or content is
not usable.
"""

import numpy as np

# Small numerical tolerance to prevent division by zero and handle
# degenerate edge cases like near-zero vector norms.
eps = 1e-12  # [dimensionless]

# Tolerance on R^T R = I when validating a rotation matrix.
rotation_tolerance = 1e-6  # [dimensionless]


def _as_vector3(value, name):
    """
    Validate and convert an input into a flat 3-element float vector.

    :param value: Array-like input to convert into a 3D vector.
    :param name:  Human-readable parameter name, shown in error messages.

    :return: numpy array of shape (3,) with dtype float64.
    :raises ValueError: If the input does not contain exactly 3 elements.
    """
    vec = np.asarray(value, dtype=float).reshape(-1)
    if vec.size != 3:
        raise ValueError(f"{name} must be a 3D vector.")
    return vec


def _as_rotation_matrix(value, name):
    """
    Validate and convert an input into a 3x3 float rotation matrix.

    Unlike a plain shape check, the matrix must also be orthonormal with a
    positive determinant, because ranges are only distances when the beam
    directions keep unit length after rotation.

    :param value: Array-like input to convert into a 3x3 matrix.
    :param name:  Human-readable parameter name, shown in error messages.

    :return: numpy array of shape (3, 3) with dtype float64.
    :raises ValueError: If the shape is not (3, 3) or the matrix is not a proper rotation.
    """
    matrix = np.asarray(value, dtype=float)
    if matrix.shape != (3, 3):
        raise ValueError(f"{name} must be a 3x3 rotation matrix.")
    if not np.all(np.isfinite(matrix)):
        raise ValueError(f"{name} must contain only finite values.")

    # R^T R must be the identity and det(R) must be +1
    if not np.allclose(matrix.T @ matrix, np.eye(3), rtol=0.0, atol=rotation_tolerance):
        raise ValueError(f"{name} must be orthonormal.")
    if np.linalg.det(matrix) <= 0.0:
        raise ValueError(f"{name} must have a positive determinant.")
    return matrix


def _as_homogeneous_matrix(value, name):
    """
    Validate and convert an input into a 4x4 homogeneous rigid transform.

    :param value: Array-like input to convert into a 4x4 matrix.
    :param name:  Human-readable parameter name, shown in error messages.

    :return: (rotation (3, 3), translation (3,)) tuple of float64 arrays.
    :raises ValueError: If the shape is not (4, 4) or the bottom row is not [0, 0, 0, 1].
    """
    matrix = np.asarray(value, dtype=float)
    if matrix.shape != (4, 4):
        raise ValueError(f"{name} must be a 4x4 homogeneous transform.")
    if not np.allclose(matrix[3], [0.0, 0.0, 0.0, 1.0], rtol=0.0, atol=eps):
        raise ValueError(f"{name} must have a bottom row of [0, 0, 0, 1].")
    rotation = _as_rotation_matrix(matrix[:3, :3], name)
    return rotation, matrix[:3, 3].copy()


def _as_angle_array(value, name, limit, tolerance):
    """
    Validate and convert a sequence of angles into an owned, read-only 1D array.

    Scalars are accepted as a single angle. The absolute value of every
    angle must not exceed limit + tolerance.

    :param value:     Scalar or 1D array-like of angles [rad].
    :param name:      Human-readable parameter name, shown in error messages.
    :param limit:     Largest allowed absolute angle [rad].
    :param tolerance: Slack added to the limit [rad].

    :return: read-only numpy array of shape (N,), N >= 1, dtype float64.
    :raises ValueError: If the input is empty, not 1D, non-finite, or out of range.
    """
    # np.array (not asarray) so the simulator owns its copy
    angles = np.array(value, dtype=float)
    if angles.ndim == 0:
        angles = angles.reshape(1)
    if angles.ndim != 1:
        raise ValueError(f"{name} must be a 1D sequence of angles.")
    if angles.size < 1:
        raise ValueError(f"{name} must contain at least one angle.")
    if not np.all(np.isfinite(angles)):
        raise ValueError(f"{name} must contain only finite angles.")

    max_abs = float(np.max(np.abs(angles)))
    if max_abs > limit + tolerance:
        raise ValueError(
            f"{name} must lie in [-{limit:.6f}, {limit:.6f}] rad (got |angle| = {max_abs:.6f})."
        )

    angles.setflags(write=False)
    return angles
