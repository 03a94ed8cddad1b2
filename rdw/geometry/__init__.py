"""
Geometry Module
===============
Ground-plane math for the tracked room.

Submodules:
- vectors: flattening, rotation and signed angles on the (x, z) plane
- tracked_space: room rectangle and the tracked-space frame
- boundary: point-in-polygon checks and the reset trip-wire
"""

from .vectors import (
    flatten_position,
    flatten_direction,
    normalize,
    rotate,
    signed_angle,
    heading_of,
    direction_from_heading
)

from .tracked_space import (
    RoomGeometry,
    TrackedSpace
)

from .boundary import (
    ResetSource,
    ResetTrigger,
    point_in_polygon,
    is_out_of_bounds
)

__all__ = [
    # Vectors
    'flatten_position',
    'flatten_direction',
    'normalize',
    'rotate',
    'signed_angle',
    'heading_of',
    'direction_from_heading',
    # Room
    'RoomGeometry',
    'TrackedSpace',
    # Boundary
    'ResetSource',
    'ResetTrigger',
    'point_in_polygon',
    'is_out_of_bounds',
]
