"""
Schemas Package

This package contains all Pydantic schemas for geometry and transform values,
organized by domain for better maintainability.

These schemas are shared across all application layers:
- Core (geometry and composite engines, image store)
- Services (editing session)
"""

# Common models (core data structures)
from .common import CropRect, Point, Size

# Display-space geometry models
from .geometry import CropBox, DisplayMapping

# Transform models
from .transform import TransformState

# Explicitly declare public API for re-export
__all__ = [
    # Common models
    "CropRect",
    "Point",
    "Size",
    # Geometry models
    "CropBox",
    "DisplayMapping",
    # Transform models
    "TransformState",
]
