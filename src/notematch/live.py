"""
Frame-by-frame detection loop tying a capture source to the classifier.

Capture, display and speech are injected so the loop can run against a
webcam, a video file or a test double.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple

import cv2
import numpy as np

from .announce import AnnouncementDebouncer, announcement_text
from .errors import StoreNotReadyError
from .io import normalize_image
from .matching import MatchResult, TemplateMatcher, TemplateStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_EMPTY_READS = 100


class FrameSource(Protocol):
    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        ...


@dataclass(slots=True)
class FrameOutcome:
    result: MatchResult
    probe: np.ndarray
    announced: Optional[str]


class LiveDetector:
    """
    Normalize each frame, classify it and announce new denominations once.
    """

    def __init__(
        self,
        store: TemplateStore,
        matcher: TemplateMatcher,
        announce: Optional[Callable[[str], None]] = None,
        debouncer: Optional[AnnouncementDebouncer] = None,
    ) -> None:
        self.store = store
        self.matcher = matcher
        self.announce = announce
        self.debouncer = debouncer if debouncer is not None else AnnouncementDebouncer()

    def process_frame(self, frame: np.ndarray) -> FrameOutcome:
        probe = normalize_image(frame, self.store.template_size)
        result = self.matcher.classify(probe, self.store)

        announced = self.debouncer.update(result.label)
        if announced is not None:
            logger.info("Detected %s (score=%.3f)", announced, result.score)
            if self.announce is not None:
                self.announce(announcement_text(announced))

        return FrameOutcome(result=result, probe=probe, announced=announced)

    def run(
        self,
        capture: FrameSource,
        show: Optional[Callable[[np.ndarray, FrameOutcome], bool]] = None,
        max_frames: Optional[int] = None,
        max_empty_reads: Optional[int] = DEFAULT_MAX_EMPTY_READS,
    ) -> int:
        """
        Pull frames until ``show`` returns False, ``max_frames`` frames were
        classified, or ``max_empty_reads`` consecutive reads came back empty.

        Returns the number of frames classified.
        """
        if self.store.is_empty():
            raise StoreNotReadyError()

        processed = 0
        empty_reads = 0
        while max_frames is None or processed < max_frames:
            ok, frame = capture.read()
            if not ok or frame is None or frame.size == 0:
                empty_reads += 1
                if max_empty_reads is not None and empty_reads >= max_empty_reads:
                    logger.info("Frame source exhausted after %d empty reads", empty_reads)
                    break
                continue
            empty_reads = 0

            outcome = self.process_frame(frame)
            processed += 1

            if show is not None and not show(frame, outcome):
                break

        return processed


def draw_result(frame: np.ndarray, result: MatchResult, color: Tuple[int, int, int] = (0, 255, 0)) -> np.ndarray:
    """
    Overlay the detected label on a copy of ``frame``.
    """
    annotated = frame.copy()
    if annotated.ndim == 2:
        annotated = cv2.cvtColor(annotated, cv2.COLOR_GRAY2BGR)
    text = f"{result.label} ({result.score:.2f})"
    cv2.putText(annotated, text, (50, 50), cv2.FONT_HERSHEY_SIMPLEX, 1, color, 2)
    return annotated


__all__ = ["DEFAULT_MAX_EMPTY_READS", "FrameOutcome", "FrameSource", "LiveDetector", "draw_result"]
