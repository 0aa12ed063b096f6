from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import cv2
import numpy as np

from notematch.announce import Speaker
from notematch.config import ClassifierConfig, parse_labels, parse_size
from notematch.live import DEFAULT_MAX_EMPTY_READS, FrameOutcome, LiveDetector, draw_result
from notematch.matching import TemplateMatcher, TemplateStore

ESC_KEY = 27


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify banknotes held in front of a webcam and announce them.")
    parser.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help="Root directory containing one sub-folder of template images per denomination.",
    )
    parser.add_argument(
        "--labels",
        type=str,
        default=None,
        help="Comma separated denominations to load, e.g. 100,200,500.",
    )
    parser.add_argument(
        "--per-label-cap",
        type=int,
        default=None,
        help="Maximum number of template files read per denomination.",
    )
    parser.add_argument(
        "--template-size",
        type=str,
        default=None,
        help="Normalized template size as WIDTHxHEIGHT.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum correlation score required to accept a denomination.",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=0,
        help="OpenCV camera index.",
    )
    parser.add_argument(
        "--no-speech",
        action="store_true",
        help="Disable spoken announcements.",
    )
    parser.add_argument(
        "--speech-rate",
        type=int,
        default=None,
        help="Words per minute for the speech engine.",
    )
    parser.add_argument(
        "--max-empty-reads",
        type=int,
        default=DEFAULT_MAX_EMPTY_READS,
        help="Stop after this many consecutive failed camera reads.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level for the detection loop.",
    )
    return parser.parse_args()


def build_config(args: argparse.Namespace) -> ClassifierConfig:
    config = ClassifierConfig.from_env()
    overrides = {}
    if args.data_root is not None:
        overrides["dataset_root"] = args.data_root
    if args.labels is not None:
        overrides["labels"] = parse_labels(args.labels)
    if args.per_label_cap is not None:
        overrides["per_label_cap"] = args.per_label_cap
    if args.template_size is not None:
        overrides["template_size"] = parse_size(args.template_size)
    if args.threshold is not None:
        overrides["threshold"] = args.threshold
    return replace(config, **overrides)


def show_frame(frame: np.ndarray, outcome: FrameOutcome) -> bool:
    cv2.imshow("Currency Detection", draw_result(frame, outcome.result))
    cv2.imshow("Warped Note", outcome.probe)
    return cv2.waitKey(1) != ESC_KEY


def main() -> int:
    args = parse_arguments()
    logging.basicConfig(level=args.log_level.upper(), format="[%(levelname)s] %(name)s: %(message)s")
    config = build_config(args)

    store = TemplateStore.from_directory(
        config.dataset_root,
        labels=config.labels,
        per_label_cap=config.per_label_cap,
        template_size=config.template_size,
    )
    if store.is_empty():
        print("[ERROR] Templates not loaded!")
        return 1

    speaker = None
    if not args.no_speech:
        try:
            speaker = Speaker(rate=args.speech_rate)
        except (ImportError, OSError, RuntimeError) as exc:
            print(f"[WARN] Speech engine unavailable ({exc}), announcements disabled.")

    capture = cv2.VideoCapture(args.camera)
    if not capture.isOpened():
        print("[ERROR] Cannot open webcam!")
        return 1
    capture.set(cv2.CAP_PROP_FRAME_WIDTH, 640)
    capture.set(cv2.CAP_PROP_FRAME_HEIGHT, 480)

    detector = LiveDetector(store, TemplateMatcher(threshold=config.threshold), announce=speaker)
    print("[INFO] Webcam Currency Detection Started. Press ESC to exit.")
    try:
        processed = detector.run(capture, show=show_frame, max_empty_reads=args.max_empty_reads)
        print(f"[INFO] Stopped after {processed} frames.")
    finally:
        capture.release()
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    sys.exit(main())
