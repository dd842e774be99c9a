"""
Core modules for the image editor

- geometry_engine: display mapping and interactive crop box
- composite_engine: rotation, flip and crop rendering
- image_manager: in-memory image store

Submodules are imported directly (e.g. ``from core.geometry_engine import
GeometryEngine``) so that ``schemas`` can use ``core.constants`` without
loading the engines.
"""
