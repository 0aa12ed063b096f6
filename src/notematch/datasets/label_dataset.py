from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LabeledImage:
    """
    A single reference image file tagged with its denomination.
    """

    label: str
    path: Path


@dataclass(slots=True)
class LabeledDataset:
    """
    Files discovered under ``root/<label>/`` in scan order.
    """

    root: Path
    samples: List[LabeledImage]
    missing_labels: List[str]

    def by_label(self) -> Dict[str, List[LabeledImage]]:
        grouped: Dict[str, List[LabeledImage]] = {}
        for sample in self.samples:
            grouped.setdefault(sample.label, []).append(sample)
        return grouped


def scan_labeled_dataset(
    root: Path | str,
    labels: Iterable[str],
    per_label_cap: int | None = None,
) -> LabeledDataset:
    """
    Enumerate candidate template files for each label.

    Expected directory structure:
        root/
            100/
            200/
            500/

    Label directories that do not exist are recorded in ``missing_labels``
    rather than treated as errors. Files are visited in sorted name order and
    at most ``per_label_cap`` are returned per label.
    """
    if per_label_cap is not None and per_label_cap <= 0:
        raise ValueError("per_label_cap must be positive")

    root_path = Path(root)
    if not root_path.is_dir():
        logger.warning("Dataset root %s does not exist", root_path)

    samples: List[LabeledImage] = []
    missing: List[str] = []
    for label in labels:
        label_dir = root_path / label
        if not label_dir.is_dir():
            logger.info("No directory for label %s under %s, skipping", label, root_path)
            missing.append(label)
            continue

        files = _list_files(label_dir)
        if per_label_cap is not None:
            files = files[:per_label_cap]
        samples.extend(LabeledImage(label=label, path=path) for path in files)

    return LabeledDataset(root=root_path, samples=samples, missing_labels=missing)


def _list_files(directory: Path) -> List[Path]:
    return sorted(
        (path for path in directory.iterdir() if path.is_file() and not path.name.startswith(".")),
        key=lambda path: path.name,
    )


__all__ = ["LabeledDataset", "LabeledImage", "scan_labeled_dataset"]
