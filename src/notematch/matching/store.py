from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

import numpy as np

from ..config import DEFAULT_LABELS, DEFAULT_PER_LABEL_CAP, DEFAULT_TEMPLATE_SIZE
from ..datasets import scan_labeled_dataset
from ..errors import ConfigurationError
from ..io import load_grayscale, normalize_image

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Template:
    """
    A normalized reference image for one denomination.

    The pixel array is made read-only so it can be shared between
    concurrent classification calls.
    """

    label: str
    image: np.ndarray

    def __post_init__(self) -> None:
        if self.image.ndim != 2:
            raise ValueError("template image must be a single-channel grayscale array")
        # Always own the pixels: a read-only view can still alias a writable buffer.
        frozen = np.array(self.image, copy=True)
        frozen.setflags(write=False)
        object.__setattr__(self, "image", frozen)

    @property
    def size(self) -> Tuple[int, int]:
        return int(self.image.shape[1]), int(self.image.shape[0])


class TemplateStore:
    """
    Holds the reference templates used by the matcher.

    The held set is an immutable tuple. ``load`` and ``replace`` build the new
    tuple fully before swapping it in under a lock, so a reader that grabs
    ``templates`` once sees either the old set or the new set, never a mix.
    A ``load`` that has returned happens-before every later ``templates`` read.
    """

    def __init__(self, template_size: Tuple[int, int] = DEFAULT_TEMPLATE_SIZE) -> None:
        width, height = template_size
        if width <= 0 or height <= 0:
            raise ConfigurationError("template_size must be positive in both dimensions")
        self._template_size = (int(width), int(height))
        self._templates: Tuple[Template, ...] = ()
        self._lock = threading.Lock()

    @classmethod
    def from_directory(
        cls,
        dataset_root: Path | str,
        labels: Sequence[str] = DEFAULT_LABELS,
        per_label_cap: int = DEFAULT_PER_LABEL_CAP,
        template_size: Tuple[int, int] = DEFAULT_TEMPLATE_SIZE,
    ) -> "TemplateStore":
        store = cls(template_size=template_size)
        store.load(dataset_root, labels, per_label_cap)
        return store

    @property
    def template_size(self) -> Tuple[int, int]:
        """
        ``(width, height)`` every template and probe must have.
        """
        return self._template_size

    @property
    def templates(self) -> Tuple[Template, ...]:
        with self._lock:
            return self._templates

    @property
    def labels(self) -> List[str]:
        seen: Dict[str, None] = {}
        for template in self.templates:
            seen.setdefault(template.label, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self.templates)

    def __iter__(self) -> Iterator[Template]:
        return iter(self.templates)

    def is_empty(self) -> bool:
        return not self.templates

    def count_by_label(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for template in self.templates:
            counts[template.label] = counts.get(template.label, 0) + 1
        return counts

    def load(
        self,
        dataset_root: Path | str,
        labels: Sequence[str] = DEFAULT_LABELS,
        per_label_cap: int = DEFAULT_PER_LABEL_CAP,
    ) -> int:
        """
        Rebuild the store from ``dataset_root/<label>/*`` and publish it.

        Files that cannot be decoded are skipped. Returns the number of
        templates now held; zero is a valid, degraded outcome.
        """
        if per_label_cap <= 0:
            raise ConfigurationError("per_label_cap must be positive")

        dataset = scan_labeled_dataset(dataset_root, labels, per_label_cap)
        loaded: List[Template] = []
        for sample in dataset.samples:
            try:
                image = load_grayscale(sample.path)
            except FileNotFoundError:
                logger.warning("Skipping undecodable template %s", sample.path)
                continue
            loaded.append(Template(label=sample.label, image=normalize_image(image, self._template_size)))

        self._publish(tuple(loaded))

        if loaded:
            logger.info("Loaded %d templates from %s", len(loaded), dataset.root)
        else:
            logger.warning("No templates loaded from %s", dataset.root)
        return len(loaded)

    def replace(self, templates: Iterable[Template]) -> int:
        """
        Publish an already prepared template set, checking dimensions first.
        """
        prepared = tuple(templates)
        for template in prepared:
            if template.size != self._template_size:
                raise ValueError(
                    f"template for {template.label} is {template.size}, store expects {self._template_size}"
                )
        self._publish(prepared)
        return len(prepared)

    def clear(self) -> None:
        self._publish(())

    def _publish(self, templates: Tuple[Template, ...]) -> None:
        with self._lock:
            self._templates = templates


__all__ = ["Template", "TemplateStore"]
