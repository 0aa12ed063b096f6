from __future__ import annotations

from pathlib import Path

import pytest

from notematch.datasets import scan_labeled_dataset


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"img")


def test_scan_lists_files_per_label_in_name_order(tmp_path: Path) -> None:
    root = tmp_path / "dataset"
    for name in ("c.png", "a.png", "b.jpg"):
        _touch(root / "100" / name)
    _touch(root / "200" / "x.png")

    dataset = scan_labeled_dataset(root, labels=["100", "200"])

    assert dataset.root == root
    assert [(sample.label, sample.path.name) for sample in dataset.samples] == [
        ("100", "a.png"),
        ("100", "b.jpg"),
        ("100", "c.png"),
        ("200", "x.png"),
    ]
    assert dataset.missing_labels == []
    assert list(dataset.by_label()) == ["100", "200"]


def test_scan_skips_missing_labels_hidden_files_and_subdirectories(tmp_path: Path) -> None:
    root = tmp_path / "dataset"
    _touch(root / "100" / "a.png")
    _touch(root / "100" / ".DS_Store")
    (root / "100" / "nested").mkdir()

    dataset = scan_labeled_dataset(root, labels=["100", "200", "500"])

    assert [sample.path.name for sample in dataset.samples] == ["a.png"]
    assert dataset.missing_labels == ["200", "500"]


def test_scan_applies_cap(tmp_path: Path) -> None:
    root = tmp_path / "dataset"
    for idx in range(12):
        _touch(root / "500" / f"{idx:02d}.png")

    dataset = scan_labeled_dataset(root, labels=["500"], per_label_cap=10)

    assert len(dataset.samples) == 10
    assert dataset.samples[-1].path.name == "09.png"


def test_scan_of_missing_root_is_empty(tmp_path: Path) -> None:
    dataset = scan_labeled_dataset(tmp_path / "missing", labels=["100"])

    assert dataset.samples == []
    assert dataset.missing_labels == ["100"]


def test_scan_rejects_non_positive_cap(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        scan_labeled_dataset(tmp_path, labels=["100"], per_label_cap=0)
