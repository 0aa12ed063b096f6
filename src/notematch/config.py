from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .errors import ConfigurationError

DEFAULT_DATASET_ROOT = Path("Dataset_preprocessed")
DEFAULT_LABELS: Tuple[str, ...] = ("100", "200", "500")
DEFAULT_PER_LABEL_CAP = 10
DEFAULT_TEMPLATE_SIZE: Tuple[int, int] = (200, 100)
DEFAULT_THRESHOLD = 0.7

ENV_PREFIX = "NOTEMATCH_"


@dataclass(frozen=True, slots=True)
class ClassifierConfig:
    """
    Tunables shared by the template store, the matcher and the scripts.

    ``template_size`` is ``(width, height)`` following OpenCV's ``dsize`` order.
    """

    dataset_root: Path = DEFAULT_DATASET_ROOT
    labels: Tuple[str, ...] = DEFAULT_LABELS
    per_label_cap: int = DEFAULT_PER_LABEL_CAP
    template_size: Tuple[int, int] = DEFAULT_TEMPLATE_SIZE
    threshold: float = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if not self.labels:
            raise ConfigurationError("labels must contain at least one denomination")
        if any(not label or "/" in label for label in self.labels):
            raise ConfigurationError(f"invalid label in {self.labels!r}")
        if len(set(self.labels)) != len(self.labels):
            raise ConfigurationError(f"duplicate labels in {self.labels!r}")
        if self.per_label_cap <= 0:
            raise ConfigurationError("per_label_cap must be positive")
        width, height = self.template_size
        if width <= 0 or height <= 0:
            raise ConfigurationError("template_size must be positive in both dimensions")
        if not (-1.0 <= self.threshold <= 1.0):
            raise ConfigurationError("threshold must be between -1 and 1")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["ClassifierConfig"] = None,
    ) -> "ClassifierConfig":
        """
        Overlay ``NOTEMATCH_*`` environment variables on top of ``base``.
        """
        env = os.environ if environ is None else environ
        config = base if base is not None else cls()
        overrides = {}

        dataset = env.get(f"{ENV_PREFIX}DATASET")
        if dataset:
            overrides["dataset_root"] = Path(dataset)

        labels = env.get(f"{ENV_PREFIX}LABELS")
        if labels:
            overrides["labels"] = parse_labels(labels)

        cap = env.get(f"{ENV_PREFIX}PER_LABEL_CAP")
        if cap:
            try:
                overrides["per_label_cap"] = int(cap)
            except ValueError as exc:
                raise ConfigurationError(f"invalid {ENV_PREFIX}PER_LABEL_CAP: {cap!r}") from exc

        threshold = env.get(f"{ENV_PREFIX}THRESHOLD")
        if threshold:
            try:
                overrides["threshold"] = float(threshold)
            except ValueError as exc:
                raise ConfigurationError(f"invalid {ENV_PREFIX}THRESHOLD: {threshold!r}") from exc

        size = env.get(f"{ENV_PREFIX}TEMPLATE_SIZE")
        if size:
            overrides["template_size"] = parse_size(size)

        return replace(config, **overrides)


def parse_labels(raw: str) -> Tuple[str, ...]:
    return tuple(label.strip() for label in raw.split(",") if label.strip())


def parse_size(raw: str) -> Tuple[int, int]:
    """
    Parse ``"200x100"`` into ``(200, 100)``.
    """
    parts = raw.lower().split("x")
    if len(parts) != 2:
        raise ConfigurationError(f"size must look like WIDTHxHEIGHT, got {raw!r}")
    try:
        width, height = (int(part.strip()) for part in parts)
    except ValueError as exc:
        raise ConfigurationError(f"size must look like WIDTHxHEIGHT, got {raw!r}") from exc
    return width, height


__all__ = [
    "ClassifierConfig",
    "DEFAULT_DATASET_ROOT",
    "DEFAULT_LABELS",
    "DEFAULT_PER_LABEL_CAP",
    "DEFAULT_TEMPLATE_SIZE",
    "DEFAULT_THRESHOLD",
    "parse_labels",
    "parse_size",
]
