"""
Dataset helpers for labeled banknote reference folders.
"""

from .label_dataset import LabeledDataset, LabeledImage, scan_labeled_dataset

__all__ = ["LabeledDataset", "LabeledImage", "scan_labeled_dataset"]
