from __future__ import annotations

import threading
import time
from pathlib import Path

import cv2
import numpy as np
import pytest

from notematch import ConfigurationError, Template, TemplateStore
from notematch.io import probe_from_buffer

SIZE = (40, 20)


def _write_notes(root: Path, label: str, images) -> None:
    label_dir = root / label
    label_dir.mkdir(parents=True, exist_ok=True)
    for idx, image in enumerate(images):
        cv2.imwrite(str(label_dir / f"{idx:02d}.png"), image)


def _start_readers(store: TemplateStore, stop: threading.Event):
    """
    Spin up threads that snapshot the store and record any set that is
    neither the six "100" templates nor the three "200" templates.
    """
    allowed = {(6, frozenset({"100"})), (3, frozenset({"200"}))}
    mixed = []

    class Reader(threading.Thread):
        def __init__(self) -> None:
            super().__init__(daemon=True)
            self.count = 0

        def run(self) -> None:
            while not stop.is_set():
                snapshot = store.templates
                state = (len(snapshot), frozenset(template.label for template in snapshot))
                if state not in allowed:
                    mixed.append(state)
                self.count += 1

    readers = [Reader() for _ in range(4)]
    for reader in readers:
        reader.start()
    while not all(reader.count for reader in readers):
        time.sleep(0.001)
    return readers, mixed


def test_load_reads_every_label(dataset_root: Path) -> None:
    store = TemplateStore(template_size=SIZE)

    count = store.load(dataset_root, labels=["100", "200", "500"])

    assert count == 3
    assert len(store) == 3
    assert not store.is_empty()
    assert store.labels == ["100", "200", "500"]
    assert store.count_by_label() == {"100": 1, "200": 1, "500": 1}


def test_templates_are_normalized_to_store_size(tmp_path: Path, make_note) -> None:
    root = tmp_path / "dataset"
    color = cv2.cvtColor(make_note(1, size=(120, 60)), cv2.COLOR_GRAY2BGR)
    _write_notes(root, "100", [color])

    store = TemplateStore.from_directory(root, labels=["100"], template_size=SIZE)

    (template,) = store.templates
    assert template.image.shape == (SIZE[1], SIZE[0])
    assert template.image.dtype == np.uint8
    assert template.size == SIZE


def test_per_label_cap_limits_templates(tmp_path: Path, make_note) -> None:
    root = tmp_path / "dataset"
    _write_notes(root, "100", [make_note(seed) for seed in range(5)])
    _write_notes(root, "200", [make_note(seed) for seed in range(10, 12)])

    store = TemplateStore(template_size=SIZE)
    count = store.load(root, labels=["100", "200"], per_label_cap=3)

    assert count == 5
    assert store.count_by_label() == {"100": 3, "200": 2}


def test_templates_follow_label_then_scan_order(tmp_path: Path, make_note) -> None:
    root = tmp_path / "dataset"
    first, second = make_note(1), make_note(2)
    _write_notes(root, "500", [first, second])
    _write_notes(root, "100", [make_note(3)])

    store = TemplateStore.from_directory(root, labels=["500", "100"], template_size=SIZE)

    assert [template.label for template in store] == ["500", "500", "100"]
    np.testing.assert_array_equal(store.templates[0].image, first)
    np.testing.assert_array_equal(store.templates[1].image, second)


def test_undecodable_files_are_skipped(tmp_path: Path, make_note, caplog: pytest.LogCaptureFixture) -> None:
    root = tmp_path / "dataset"
    _write_notes(root, "100", [make_note(1)])
    (root / "100" / "zz_corrupt.png").write_bytes(b"not an image")

    with caplog.at_level("WARNING", logger="notematch.matching.store"):
        count = TemplateStore(template_size=SIZE).load(root, labels=["100"])

    assert count == 1
    assert "zz_corrupt.png" in caplog.text


def test_missing_root_yields_empty_store(tmp_path: Path) -> None:
    store = TemplateStore(template_size=SIZE)

    assert store.load(tmp_path / "nowhere", labels=["100", "200"]) == 0
    assert store.is_empty()
    assert store.labels == []


def test_reload_replaces_whole_set(tmp_path: Path, make_note) -> None:
    old_root = tmp_path / "old"
    new_root = tmp_path / "new"
    _write_notes(old_root, "100", [make_note(1), make_note(2)])
    _write_notes(new_root, "200", [make_note(3)])

    store = TemplateStore.from_directory(old_root, labels=["100", "200"], template_size=SIZE)
    snapshot = store.templates
    store.load(new_root, labels=["100", "200"])

    assert [template.label for template in snapshot] == ["100", "100"]
    assert [template.label for template in store.templates] == ["200"]


def test_reload_failure_to_find_templates_empties_store(dataset_root: Path, tmp_path: Path) -> None:
    store = TemplateStore.from_directory(dataset_root, labels=["100"], template_size=SIZE)

    store.load(tmp_path / "empty", labels=["100"])

    assert store.is_empty()


def test_readers_never_observe_a_partial_reload(make_note) -> None:
    old_set = [Template("100", make_note(seed)) for seed in range(6)]
    new_set = [Template("200", make_note(seed)) for seed in range(10, 13)]
    store = TemplateStore(template_size=SIZE)
    store.replace(old_set)

    stop = threading.Event()
    readers, mixed = _start_readers(store, stop)
    for _ in range(200):
        store.replace(new_set)
        store.replace(old_set)
    stop.set()
    for thread in readers:
        thread.join()

    assert sum(thread.count for thread in readers) > 0
    assert mixed == []


def test_templates_are_read_only(make_note) -> None:
    image = make_note(1)
    template = Template("100", image)

    with pytest.raises(ValueError):
        template.image[0, 0] = 1
    image[0, 0] = 0
    assert image.flags.writeable


def test_replace_rejects_wrong_size(make_note) -> None:
    store = TemplateStore(template_size=SIZE)

    with pytest.raises(ValueError):
        store.replace([Template("100", make_note(1, size=(10, 10)))])
    assert store.is_empty()


def test_invalid_cap_is_rejected(dataset_root: Path) -> None:
    with pytest.raises(ConfigurationError):
        TemplateStore(template_size=SIZE).load(dataset_root, labels=["100"], per_label_cap=0)


def test_readers_never_observe_a_partial_load(tmp_path: Path, make_note) -> None:
    old_root = tmp_path / "old"
    new_root = tmp_path / "new"
    _write_notes(old_root, "100", [make_note(seed) for seed in range(6)])
    _write_notes(new_root, "200", [make_note(seed) for seed in range(10, 13)])
    store = TemplateStore.from_directory(old_root, labels=["100", "200"], template_size=SIZE)

    stop = threading.Event()
    readers, mixed = _start_readers(store, stop)
    for _ in range(20):
        assert store.load(new_root, labels=["100", "200"]) == 3
        assert store.load(old_root, labels=["100", "200"]) == 6
    stop.set()
    for thread in readers:
        thread.join()

    assert sum(thread.count for thread in readers) > 0
    assert mixed == []


def test_read_only_view_is_copied_into_template(make_note) -> None:
    image = make_note(1)
    expected = image.copy()
    view = image.view()
    view.setflags(write=False)

    template = Template("100", view)
    image[:] = 0

    np.testing.assert_array_equal(template.image, expected)
    assert not template.image.flags.writeable


def test_template_from_raw_buffer_is_detached(make_note) -> None:
    buffer = bytearray(make_note(2).tobytes())
    expected = np.frombuffer(bytes(buffer), dtype=np.uint8).reshape(SIZE[1], SIZE[0])
    store = TemplateStore(template_size=SIZE)
    store.replace([Template("200", probe_from_buffer(buffer, SIZE[0], SIZE[1]))])

    buffer[0:10] = bytes(10)

    np.testing.assert_array_equal(store.templates[0].image, expected)


def test_cap_counts_undecodable_files(tmp_path: Path, make_note) -> None:
    root = tmp_path / "dataset"
    _write_notes(root, "100", [make_note(1)])
    (root / "100" / "00.png").rename(root / "100" / "01.png")
    (root / "100" / "00_bad.png").write_bytes(b"not an image")

    store = TemplateStore(template_size=SIZE)

    assert store.load(root, labels=["100"], per_label_cap=1) == 0
    assert store.is_empty()
    assert store.load(root, labels=["100"], per_label_cap=2) == 1


def test_invalid_template_size_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        TemplateStore(template_size=(0, 100))
