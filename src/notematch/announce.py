from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

import pyttsx3

from .matching.engine import UNKNOWN_LABEL

logger = logging.getLogger(__name__)


def announcement_text(label: str) -> str:
    return f"{label} rupee note detected"


@dataclass(slots=True)
class AnnouncementDebouncer:
    """
    Announce a denomination once, then stay quiet until a different one shows up.

    States are silent (``last_announced is None``) and announced(label).
    Unknown results neither announce nor reset the state, so a note that
    briefly drops below the threshold is not repeated when it comes back.
    """

    last_announced: Optional[str] = None

    def update(self, label: str) -> Optional[str]:
        if label == UNKNOWN_LABEL or label == self.last_announced:
            return None
        self.last_announced = label
        return label

    def reset(self) -> None:
        self.last_announced = None


class Speaker:
    """
    Text-to-speech through pyttsx3, spoken on a background thread.

    One engine is shared by all announcements; the lock serializes
    ``say``/``runAndWait`` since a pyttsx3 engine runs one loop at a time.
    """

    def __init__(self, rate: Optional[int] = None, voice: Optional[str] = None, engine: Any = None) -> None:
        self.engine = engine if engine is not None else pyttsx3.init()
        if rate is not None:
            self.engine.setProperty("rate", rate)
        if voice:
            self.engine.setProperty("voice", voice)
        self._lock = threading.Lock()

    def __call__(self, text: str) -> threading.Thread:
        thread = threading.Thread(target=self._speak, args=(text,), daemon=True)
        thread.start()
        return thread

    def _speak(self, text: str) -> None:
        with self._lock:
            try:
                self.engine.say(text)
                self.engine.runAndWait()
            except RuntimeError as exc:
                logger.warning("Speech engine failed to announce %r: %s", text, exc)


__all__ = ["AnnouncementDebouncer", "Speaker", "announcement_text"]
