"""
Ground-Plane Vector Utilities
=============================
Conversions between the 3D tracking frame and the 2D ground plane.

Conventions:
- 3D vectors are (x, y, z) with y pointing up
- The ground plane keeps (x, z) and drops the vertical component
- Angles are in degrees, counterclockwise positive when the ground
  plane is viewed from above with x to the right and z pointing up

           z+
            |
            |
    x- -----+----- x+
            |
            |
           z-
"""

import numpy as np
from typing import Optional

EPSILON = 1e-6


def flatten_position(position_3d: np.ndarray) -> np.ndarray:
    """Project a 3D position onto the ground plane -> (x, z)"""
    p = np.asarray(position_3d, dtype=float)
    return np.array([p[0], p[2]])


def flatten_direction(forward_3d: np.ndarray,
                      fallback: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Project a 3D forward vector onto the ground plane and normalize it.

    A forward vector pointing straight up or down has no ground
    component; in that case the fallback direction is returned.
    """
    f = np.asarray(forward_3d, dtype=float)
    flat = np.array([f[0], f[2]])
    norm = np.linalg.norm(flat)
    if norm < EPSILON:
        if fallback is None:
            raise ValueError(f"Forward vector has no ground component: {f}")
        return normalize(fallback)
    return flat / norm


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector in the direction of v"""
    v = np.asarray(v, dtype=float)
    norm = np.linalg.norm(v)
    if norm < EPSILON:
        raise ValueError(f"Cannot normalize zero-length vector: {v}")
    return v / norm


def rotate(v: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate a 2D vector counterclockwise"""
    rad = np.radians(degrees)
    c, s = np.cos(rad), np.sin(rad)
    return np.array([c * v[0] - s * v[1], s * v[0] + c * v[1]])


def signed_angle(from_dir: np.ndarray, to_dir: np.ndarray) -> float:
    """
    Signed angle (degrees) that rotates from_dir onto to_dir.

    Result is in (-180, 180]; counterclockwise positive.
    """
    cross = from_dir[0] * to_dir[1] - from_dir[1] * to_dir[0]
    dot = from_dir[0] * to_dir[0] + from_dir[1] * to_dir[1]
    angle = float(np.degrees(np.arctan2(cross, dot)))
    if angle <= -180.0:
        angle += 360.0
    return angle


def heading_of(direction: np.ndarray) -> float:
    """Heading in degrees of a 2D direction, measured from +x"""
    return float(np.degrees(np.arctan2(direction[1], direction[0])))


def direction_from_heading(degrees: float) -> np.ndarray:
    """Unit 2D direction for a heading measured from +x"""
    rad = np.radians(degrees)
    return np.array([np.cos(rad), np.sin(rad)])
