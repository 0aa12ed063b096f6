"""
IO helpers for loading and normalizing banknote images.
"""

from .image_loader import load_grayscale, normalize_image, probe_from_buffer, to_grayscale

__all__ = ["load_grayscale", "normalize_image", "probe_from_buffer", "to_grayscale"]
