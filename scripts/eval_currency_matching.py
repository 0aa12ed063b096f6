from __future__ import annotations

import argparse
import logging
import statistics
import time
from collections import Counter
from pathlib import Path
from typing import Dict, List
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import cv2

from notematch.config import DEFAULT_LABELS, DEFAULT_PER_LABEL_CAP, DEFAULT_THRESHOLD, parse_labels, parse_size
from notematch.datasets import scan_labeled_dataset
from notematch.io import load_grayscale, normalize_image
from notematch.live import draw_result
from notematch.matching import TemplateMatcher, TemplateStore


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate denomination matching accuracy and throughput.")
    parser.add_argument(
        "--templates",
        type=Path,
        default=Path("Dataset_preprocessed"),
        help="Root directory with one sub-folder of template images per denomination.",
    )
    parser.add_argument(
        "--probes",
        type=Path,
        required=True,
        help="Root directory with one sub-folder of probe images per denomination.",
    )
    parser.add_argument(
        "--labels",
        type=str,
        default=",".join(DEFAULT_LABELS),
        help="Comma separated denominations to evaluate.",
    )
    parser.add_argument(
        "--per-label-cap",
        type=int,
        default=DEFAULT_PER_LABEL_CAP,
        help="Maximum number of template files read per denomination.",
    )
    parser.add_argument(
        "--template-size",
        type=str,
        default="200x100",
        help="Normalized template size as WIDTHxHEIGHT.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help="Minimum correlation score required to accept a denomination.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Optional directory where annotated probes will be written.",
    )
    return parser.parse_args()


def evaluate() -> None:
    args = parse_arguments()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")

    labels = parse_labels(args.labels)
    template_size = parse_size(args.template_size)
    store = TemplateStore.from_directory(
        args.templates,
        labels=labels,
        per_label_cap=args.per_label_cap,
        template_size=template_size,
    )
    if store.is_empty():
        raise SystemExit(f"No templates could be loaded from {args.templates}")

    matcher = TemplateMatcher(threshold=args.threshold)
    probes = scan_labeled_dataset(args.probes, labels)
    if not probes.samples:
        raise SystemExit(f"No probe images found under {args.probes}")

    output_dir = args.output_dir
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    durations_ms: List[float] = []
    scores: List[float] = []
    correct: Counter = Counter()
    totals: Counter = Counter()
    confusion: Dict[str, Counter] = {label: Counter() for label in labels}

    for sample in probes.samples:
        try:
            image = load_grayscale(sample.path)
        except FileNotFoundError:
            print(f"{sample.path.name:35s} | unreadable, skipped")
            continue
        probe = normalize_image(image, store.template_size)

        start = time.perf_counter()
        result = matcher.classify(probe, store)
        end = time.perf_counter()

        duration_ms = (end - start) * 1000.0
        durations_ms.append(duration_ms)
        scores.append(result.score)
        totals[sample.label] += 1
        confusion[sample.label][result.label] += 1
        hit = result.label == sample.label
        if hit:
            correct[sample.label] += 1

        if output_dir is not None:
            annotated = draw_result(image, result, color=(0, 255, 0) if hit else (0, 0, 255))
            cv2.imwrite(str(output_dir / f"{sample.label}_{sample.path.stem}_viz.png"), annotated)

        print(
            f"{sample.label + '/' + sample.path.name:35s} | "
            f"pred={result.label:>8s} | "
            f"score={result.score: .4f} | "
            f"{'ok ' if hit else 'MISS'} | "
            f"time={duration_ms:7.2f}ms"
        )

    if not durations_ms:
        raise SystemExit("No probe image could be decoded")

    evaluated = sum(totals.values())
    print("\nSummary")
    print("-" * 72)
    print(f"Templates loaded : {len(store)} ({', '.join(f'{k}={v}' for k, v in store.count_by_label().items())})")
    print(f"Probes evaluated : {evaluated}")
    print(f"Accuracy         : {sum(correct.values()) / evaluated:.3f} at threshold {args.threshold}")
    for label in labels:
        if totals[label]:
            breakdown = ", ".join(f"{pred}={count}" for pred, count in confusion[label].most_common())
            print(f"  {label:>14s} : {correct[label]}/{totals[label]} ({breakdown})")
    print(f"Score            : mean={statistics.fmean(scores):.3f}, median={statistics.median(scores):.3f}, min={min(scores):.3f}, max={max(scores):.3f}")
    print(f"Latency (ms)     : mean={statistics.fmean(durations_ms):.2f}, median={statistics.median(durations_ms):.2f}, min={min(durations_ms):.2f}, max={max(durations_ms):.2f}")


if __name__ == "__main__":
    evaluate()
