"""
TEXT-TO-SPEECH ABSTRACTION

Core semantics:
- speak(text) → play text, no completion signal
- speak_then_invoke(text, on_done) → play text, call on_done once after playback
- Flush: a new speak cancels the previous utterance and its pending callback

The state machine guards every spoken interval with its own timer, so a
callback lost to a flush never leaves a session stuck.
"""

# ============================================================================
# 1) IMPORTS
# ============================================================================
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger("RISA.TextToSpeech")


# ============================================================================
# 2) TEXT-TO-SPEECH INTERFACE
# ============================================================================
class TextToSpeech(ABC):

    @abstractmethod
    def speak(self, text: str) -> None:
        pass

    @abstractmethod
    def speak_then_invoke(self, text: str, on_done: Callable[[], None]) -> None:
        """
        Speak text, then invoke on_done exactly once after playback completes.

        Raises on synthesis failure; in that case on_done is never invoked.
        """
        pass

    def shutdown(self) -> None:
        pass


# ============================================================================
# 3) CONSOLE IMPLEMENTATION
# ============================================================================
class ConsoleTextToSpeech(TextToSpeech):
    """
    Prints utterances and simulates playback time on a worker thread.

    Producer-consumer: callers enqueue, the worker "plays" one utterance at a
    time. Items from a flushed generation are skipped with their callbacks.
    """

    def __init__(self, seconds_per_word: float = 0.05, printer: Callable[[str], None] = print):
        self.seconds_per_word = seconds_per_word
        self._printer = printer
        self._queue: queue.Queue = queue.Queue()
        self._generation = 0
        self._lock = threading.Lock()
        self._worker_thread = threading.Thread(target=self._worker, name="risa-tts", daemon=True)
        self._worker_thread.start()

    def speak(self, text: str) -> None:
        self._enqueue(text, None)

    def speak_then_invoke(self, text: str, on_done: Callable[[], None]) -> None:
        self._enqueue(text, on_done)

    def _enqueue(self, text: str, on_done: Optional[Callable[[], None]]) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
        self._queue.put((generation, text, on_done))

    def _current_generation(self) -> int:
        with self._lock:
            return self._generation

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            # Poison pill: stop signal
            if item is None:
                break
            generation, text, on_done = item
            if generation != self._current_generation():
                logger.debug(f"[worker] Flushed: {text!r}")
                continue
            self._printer(f"RISA: {text}")
            time.sleep(self.seconds_per_word * len(text.split()))
            if generation != self._current_generation():
                logger.debug(f"[worker] Preempted during playback: {text!r}")
                continue
            if on_done is not None:
                try:
                    on_done()
                except Exception:
                    logger.exception("[worker] on_done callback failed")

    def shutdown(self) -> None:
        with self._lock:
            self._generation += 1
        self._queue.put(None)
