"""
Speech-to-Text Module

Responsibility: Start one recognition, report one outcome.
Nothing more.

Does NOT:
- Decide what the text means (no intent parsing)
- Trigger actions
- Retry (one invocation, one callback)
"""

from abc import ABC, abstractmethod
from enum import Enum
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("RISA.SpeechToText")


class RecognitionErrorKind(Enum):
    NO_MATCH = "no_match"
    NETWORK = "network"
    OTHER = "other"


ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[RecognitionErrorKind], None]


class SpeechToText(ABC):
    """
    Base class for speech recognizers.

    Contract: every start_listening() call ends with exactly one of
    on_result(final_transcript) or on_error(kind), on any thread.
    """

    @abstractmethod
    def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        pass


class QueuedSpeechToText(SpeechToText):
    """
    Recognizer fed by the host: the next feed()/feed_error() after
    start_listening() completes the pending recognition.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Optional[tuple] = None

    @property
    def is_listening(self) -> bool:
        with self._lock:
            return self._pending is not None

    def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        with self._lock:
            if self._pending is not None:
                logger.warning("[start_listening] Previous recognition still pending; replacing")
            self._pending = (on_result, on_error)
        logger.info("[start_listening] Listening...")

    def _take(self) -> Optional[tuple]:
        with self._lock:
            pending, self._pending = self._pending, None
        return pending

    def feed(self, transcript: str) -> bool:
        pending = self._take()
        if pending is None:
            logger.debug(f"[feed] Not listening; dropped {transcript!r}")
            return False
        on_result, _ = pending
        on_result(transcript)
        return True

    def feed_error(self, kind: RecognitionErrorKind) -> bool:
        pending = self._take()
        if pending is None:
            logger.debug(f"[feed_error] Not listening; dropped {kind.value}")
            return False
        _, on_error = pending
        on_error(kind)
        return True
