from __future__ import annotations

from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

PathLike = Union[str, Path]
Size = Tuple[int, int]


def load_grayscale(path: PathLike) -> np.ndarray:
    """
    Load an image as a single-channel array suitable for template matching.
    """
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise FileNotFoundError(f"Unable to load image at {path}")
    return image


def to_grayscale(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    raise ValueError(f"unsupported image shape {image.shape}")


def normalize_image(image: np.ndarray, size: Size) -> np.ndarray:
    """
    Convert to 8-bit grayscale and resize to ``size`` (width, height).

    Templates and probes must both go through this function so their
    correlation scores are comparable.
    """
    if image.size == 0:
        raise ValueError("cannot normalize an empty image")
    gray = to_grayscale(image)
    if gray.dtype != np.uint8:
        gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    width, height = size
    if gray.shape[1] != width or gray.shape[0] != height:
        gray = cv2.resize(gray, (width, height))
    return np.ascontiguousarray(gray)


def probe_from_buffer(data: Union[bytes, bytearray, memoryview, np.ndarray], width: int, height: int) -> np.ndarray:
    """
    Wrap a raw row-major 8-bit grayscale buffer as a read-only ``height x width`` probe.
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    flat = np.frombuffer(data, dtype=np.uint8) if not isinstance(data, np.ndarray) else data.reshape(-1)
    if flat.dtype != np.uint8:
        raise ValueError(f"probe buffer must be uint8, got {flat.dtype}")
    if flat.size != width * height:
        raise ValueError(f"buffer holds {flat.size} bytes, expected {width * height} for {width}x{height}")
    probe = flat.reshape(height, width)
    probe.setflags(write=False)
    return probe
