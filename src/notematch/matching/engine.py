from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import cv2
import numpy as np

from ..config import DEFAULT_THRESHOLD
from ..errors import ConfigurationError, DimensionMismatchError, StoreNotReadyError
from .store import TemplateStore

UNKNOWN_LABEL = "unknown"
SCORE_TOLERANCE = 1e-5


@dataclass(frozen=True, slots=True)
class MatchResult:
    """
    Best denomination for a probe, or ``UNKNOWN_LABEL`` below the threshold.
    """

    label: str
    score: float

    @property
    def is_unknown(self) -> bool:
        return self.label == UNKNOWN_LABEL


def ncc_score(probe: np.ndarray, template: np.ndarray) -> float:
    """
    Zero-mean normalized cross-correlation of two equal-size grids.

    Equivalent to the Pearson coefficient of the flattened pixels. A grid
    with no variance has no defined correlation and scores 0.0.
    """
    if probe.shape != template.shape:
        raise DimensionMismatchError(f"probe shape {probe.shape} != template shape {template.shape}")
    if np.ptp(probe) == 0 or np.ptp(template) == 0:
        return 0.0

    # Center first, float32 sums over raw 8-bit products lose precision.
    centered_probe = probe.astype(np.float32)
    centered_probe -= centered_probe.mean()
    centered_template = template.astype(np.float32)
    centered_template -= centered_template.mean()

    result = cv2.matchTemplate(centered_probe, centered_template, cv2.TM_CCOEFF_NORMED)
    _, max_val, _, _ = cv2.minMaxLoc(result)
    # Identical grids must reach exactly 1.0 so a threshold of 1.0 still accepts them.
    if abs(max_val) >= 1.0 - SCORE_TOLERANCE:
        return math.copysign(1.0, max_val)
    return float(max_val)


@dataclass(frozen=True, slots=True)
class TemplateMatcher:
    """
    Stateless classifier scoring a probe against every stored template.
    """

    threshold: float = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if not (-1.0 <= self.threshold <= 1.0):
            raise ConfigurationError("threshold must be between -1 and 1")

    def score_all(self, probe: np.ndarray, store: TemplateStore) -> List[Tuple[str, float]]:
        """
        Score ``probe`` against each template, in store order.
        """
        templates = store.templates
        if not templates:
            raise StoreNotReadyError()
        self._check_probe(probe, store)
        return [(template.label, ncc_score(probe, template.image)) for template in templates]

    def classify(self, probe: np.ndarray, store: TemplateStore) -> MatchResult:
        """
        Return the best label, or ``UNKNOWN_LABEL`` when the best score is below the threshold.

        Ties go to the template seen first in store order.
        """
        scores = self.score_all(probe, store)

        best_label, best_score = scores[0]
        for label, score in scores[1:]:
            if score > best_score:
                best_label, best_score = label, score

        if best_score < self.threshold:
            return MatchResult(label=UNKNOWN_LABEL, score=best_score)
        return MatchResult(label=best_label, score=best_score)

    @staticmethod
    def _check_probe(probe: np.ndarray, store: TemplateStore) -> None:
        if probe.ndim != 2:
            raise DimensionMismatchError("probe must be a single-channel grayscale image")
        width, height = store.template_size
        if probe.shape != (height, width):
            raise DimensionMismatchError(
                f"probe is {probe.shape[1]}x{probe.shape[0]}, templates are {width}x{height}"
            )
        if probe.dtype != np.uint8:
            raise DimensionMismatchError(f"probe must be uint8, got {probe.dtype}")


def classify(probe: np.ndarray, store: TemplateStore, threshold: float = DEFAULT_THRESHOLD) -> MatchResult:
    return TemplateMatcher(threshold=threshold).classify(probe, store)


__all__ = ["MatchResult", "TemplateMatcher", "UNKNOWN_LABEL", "classify", "ncc_score"]
