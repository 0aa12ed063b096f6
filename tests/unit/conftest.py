from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

import cv2
import numpy as np
import pytest

TEMPLATE_SIZE = (40, 20)


def _make_note(seed: int, size=TEMPLATE_SIZE) -> np.ndarray:
    width, height = size
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width), dtype=np.uint8)


@pytest.fixture()
def make_note() -> Callable[..., np.ndarray]:
    """
    Deterministic textured grayscale image standing in for a banknote scan.
    """
    return _make_note


@pytest.fixture()
def notes() -> Dict[str, np.ndarray]:
    return {"100": _make_note(100), "200": _make_note(200), "500": _make_note(500)}


@pytest.fixture()
def dataset_root(tmp_path: Path, notes: Dict[str, np.ndarray]) -> Path:
    root = tmp_path / "dataset"
    for label, image in notes.items():
        label_dir = root / label
        label_dir.mkdir(parents=True)
        cv2.imwrite(str(label_dir / "a.png"), image)
    return root
