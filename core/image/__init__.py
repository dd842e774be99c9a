"""
Image codec utilities.

- converters: Format conversions (NumPy, PIL, encoded bytes, data URLs)
"""

from core.image.converters import ImageConverters

__all__ = ["ImageConverters"]
