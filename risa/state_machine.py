"""
INTERACTION STATE MACHINE FOR RISA

Gesture-driven voice dialogue:
IDLE → SPEAKING_PROMPT → AWAITING_SPEECH_START → LISTENING → PROCESSING → SPEAKING_RESULT → IDLE

plus a one-time ONBOARDING greeting (IDLE → ONBOARDING → IDLE) the first time
the feature is observed enabled.

States:
- IDLE: Waiting for a two-finger swipe down
- ONBOARDING: Playing the first-run greeting
- SPEAKING_PROMPT: Playing "Hi, what can I do for you?"
- AWAITING_SPEECH_START: Prompt finished, recognizer start delay running
- LISTENING: One recognition in flight
- PROCESSING: Classify + dispatch on the scheduler worker
- SPEAKING_RESULT: Playing the reply or an apology

Allowed Transitions (ONLY THESE):
- IDLE → SPEAKING_PROMPT             (swipe down, gated)
- IDLE → ONBOARDING                  (enabled, onboarding flag unset)
- ONBOARDING → IDLE                  (greeting done / failed)
- SPEAKING_PROMPT → AWAITING_SPEECH_START (prompt done)
- SPEAKING_PROMPT → IDLE             (synthesis failure)
- AWAITING_SPEECH_START → LISTENING  (start delay elapsed)
- AWAITING_SPEECH_START → IDLE       (start delay could not be scheduled)
- LISTENING → PROCESSING             (final transcript or recognition error)
- PROCESSING → SPEAKING_RESULT       (something to say)
- PROCESSING → IDLE                  (action failed, nothing to say)
- SPEAKING_RESULT → IDLE             (reply done / failed)

Core principles:
- One session at a time; a swipe during a session is ignored, not queued
- Every mutation happens under one reentrant lock
- Every spoken interval has a guard timer sized to its text; completion or guard, first wins
- "assistant_listening" is broadcast True once and False once per session
- "assistant_active" brackets the onboarding greeting, start then stop
- Every error path drains to IDLE
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional

from risa.actions import ActionSink
from risa.app_resolver import AppResolver, ApplicationCatalog
from risa.command_executor import CommandExecutor
from risa.config import Config, _DEFAULT_CONFIG
from risa.gesture import GestureEvent, is_swipe_down
from risa.intent_parser import CommandClassifier
from risa.policy import (
    GENERIC_ERROR_RESPONSE,
    LISTEN_DELAY_SECONDS,
    LISTENING_PROMPT,
    NETWORK_ERROR_RESPONSE,
    NO_MATCH_RESPONSE,
    ONBOARDING_BROADCAST_SECONDS,
    ONBOARDING_GREETING,
    SPEECH_SECONDS_PER_WORD,
    SPEECH_TIMEOUT_SECONDS,
    SWIPE_MAX_DELTA_X,
    SWIPE_MIN_DELTA_Y,
)
from risa.remote_query import RemoteQueryAdapter
from risa.scheduler import ScheduledCall, TaskScheduler
from risa.settings_store import (
    KEY_API_KEY,
    KEY_ENABLED,
    KEY_ONBOARDING_DONE,
    SettingsChange,
    SettingsStore,
)
from risa.speech_to_text import RecognitionErrorKind, SpeechToText
from risa.text_to_speech import TextToSpeech

logger = logging.getLogger(__name__)

BROADCAST_LISTENING = "assistant_listening"
BROADCAST_ACTIVE = "assistant_active"

RECOGNITION_ERROR_RESPONSES = {
    RecognitionErrorKind.NO_MATCH: NO_MATCH_RESPONSE,
    RecognitionErrorKind.NETWORK: NETWORK_ERROR_RESPONSE,
    RecognitionErrorKind.OTHER: GENERIC_ERROR_RESPONSE,
}


# ============================================================================
# PHASES AND SESSION
# ============================================================================

class Phase(Enum):
    IDLE = "IDLE"
    ONBOARDING = "ONBOARDING"
    SPEAKING_PROMPT = "SPEAKING_PROMPT"
    AWAITING_SPEECH_START = "AWAITING_SPEECH_START"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
    SPEAKING_RESULT = "SPEAKING_RESULT"


VALID_TRANSITIONS = {
    Phase.IDLE: {Phase.SPEAKING_PROMPT, Phase.ONBOARDING},
    Phase.ONBOARDING: {Phase.IDLE},
    Phase.SPEAKING_PROMPT: {Phase.AWAITING_SPEECH_START, Phase.IDLE},
    Phase.AWAITING_SPEECH_START: {Phase.LISTENING, Phase.IDLE},
    Phase.LISTENING: {Phase.PROCESSING},
    Phase.PROCESSING: {Phase.SPEAKING_RESULT, Phase.IDLE},
    Phase.SPEAKING_RESULT: {Phase.IDLE},
}


@dataclass
class Session:
    """The single live interaction. Owned by InteractionStateMachine."""
    enabled: bool = False
    unlocked: bool = False
    phase: Phase = Phase.IDLE
    last_transcript: Optional[str] = None
    processing: bool = False
    session_id: int = 0
    api_key: str = ""
    torch_enabled: bool = False


def _log_broadcast(kind: str, payload: Any) -> None:
    logger.info(f"[broadcast] {kind}={payload}")


# ============================================================================
# STATE MACHINE
# ============================================================================

class InteractionStateMachine:
    """
    Sole owner of the Session.

    Input callbacks (pointer events, unlock, settings changes) and engine
    callbacks (speech done, transcript, recognition error, timers, dispatch
    results) may arrive on any thread.
    """

    def __init__(
        self,
        settings: SettingsStore,
        stt: SpeechToText,
        tts: TextToSpeech,
        actions: ActionSink,
        catalog: ApplicationCatalog,
        remote: RemoteQueryAdapter,
        scheduler: TaskScheduler,
        broadcast: Optional[Callable[[str, Any], None]] = None,
        config: Optional[Config] = None,
        classifier: Optional[CommandClassifier] = None,
        executor: Optional[CommandExecutor] = None,
    ):
        config = config if config is not None else Config(_DEFAULT_CONFIG)
        self.settings = settings
        self.stt = stt
        self.tts = tts
        self.remote = remote
        self.scheduler = scheduler
        self._broadcast_fn = broadcast or _log_broadcast
        self.classifier = classifier or CommandClassifier()
        # Catalog is snapshotted here; installs after startup are not seen
        self.executor = executor or CommandExecutor(
            actions,
            AppResolver.from_catalog(catalog),
            remote,
            torch_state=self._torch_state,
        )

        self.prompt = config.get("assistant.prompt", LISTENING_PROMPT)
        self.listen_delay = float(config.get("assistant.listen_delay_seconds", LISTEN_DELAY_SECONDS))
        self.speech_timeout = float(config.get("assistant.speech_timeout_seconds", SPEECH_TIMEOUT_SECONDS))
        self.speech_seconds_per_word = float(
            config.get("assistant.speech_seconds_per_word", SPEECH_SECONDS_PER_WORD)
        )
        self.onboarding_broadcast_delay = float(
            config.get("assistant.onboarding_broadcast_seconds", ONBOARDING_BROADCAST_SECONDS)
        )
        self.min_delta_y = float(config.get("gesture.min_delta_y", SWIPE_MIN_DELTA_Y))
        self.max_delta_x = float(config.get("gesture.max_delta_x", SWIPE_MAX_DELTA_X))

        self._lock = threading.RLock()
        self._session = Session()
        self._closed = False
        self._started = False

        # Token of the spoken interval currently awaiting completion
        self._speech_token = 0
        self._speech_guard: Optional[ScheduledCall] = None
        self._listen_timer: Optional[ScheduledCall] = None
        self._onboarding_timer: Optional[ScheduledCall] = None

        self._listening_broadcast_open = False
        self._active_broadcast_open = False

        logger.info(f"InteractionStateMachine initialized: {self._session.phase.value}")

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def phase(self) -> Phase:
        with self._lock:
            return self._session.phase

    @property
    def session(self) -> Session:
        """Copy of the session; mutating it has no effect."""
        with self._lock:
            return dataclasses.replace(self._session)

    @property
    def is_idle(self) -> bool:
        return self.phase is Phase.IDLE

    # ========================================================================
    # PUBLIC INPUTS
    # ========================================================================

    def start(self) -> None:
        """Read settings, subscribe to changes, run onboarding if due."""
        with self._lock:
            if self._closed or self._started:
                return
            self._started = True
            self.settings.subscribe(self.on_settings_changed)
            self._reload_settings()
            self._maybe_start_onboarding()

    def on_settings_changed(self, change: Optional[SettingsChange] = None) -> None:
        """Single reducer for every settings change."""
        with self._lock:
            if self._closed:
                return
            if change is not None:
                logger.debug(f"[settings] Changed: {change.key}")
            self._reload_settings()
            self._maybe_start_onboarding()

    def on_device_unlocked(self) -> None:
        with self._lock:
            if not self._session.unlocked:
                self._session.unlocked = True
                logger.info("[unlock] Device unlocked; gestures accepted from now on")

    def set_torch_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._session.torch_enabled = bool(enabled)

    def on_pointer_event(self, event: GestureEvent) -> bool:
        """
        Gate a pointer sample and start a session on a valid swipe down.

        Returns True when a session was started.
        """
        if not is_swipe_down(event, self.min_delta_y, self.max_delta_x):
            return False

        with self._lock:
            session = self._session
            if self._closed:
                return False
            if not session.enabled or not session.unlocked:
                logger.debug(
                    f"[gesture] Ignored: enabled={session.enabled} unlocked={session.unlocked}"
                )
                return False
            if session.processing or session.phase is not Phase.IDLE:
                logger.debug(f"[gesture] Ignored: session active ({session.phase.value})")
                return False

            session.session_id += 1
            session.processing = True
            logger.info(f"[gesture] Swipe down; starting session {session.session_id}")
            self._transition(Phase.SPEAKING_PROMPT)
            self._set_listening_broadcast(True)
            self._speak(self.prompt)
            return True

    def shutdown(self) -> None:
        """Cancel pending timers and ignore every later callback."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._speech_token += 1
            for handle in (self._speech_guard, self._listen_timer, self._onboarding_timer):
                if handle is not None:
                    handle.cancel()
            self._speech_guard = self._listen_timer = self._onboarding_timer = None
            self._close_active_broadcast()
            self._set_listening_broadcast(False)
            logger.info(f"[shutdown] Stopped in phase {self._session.phase.value}")

    # ========================================================================
    # TRANSITIONS
    # ========================================================================

    def _transition(self, new_phase: Phase) -> None:
        old_phase = self._session.phase
        if new_phase not in VALID_TRANSITIONS[old_phase]:
            error_msg = f"Invalid transition: {old_phase.value} -> {new_phase.value}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        self._session.phase = new_phase
        logger.info(f"Phase transition: {old_phase.value} -> {new_phase.value}")

    def _end_session(self) -> None:
        self._transition(Phase.IDLE)
        self._session.processing = False
        self._set_listening_broadcast(False)
        logger.info(f"[session] Session {self._session.session_id} finished")

    # ========================================================================
    # SETTINGS AND ONBOARDING
    # ========================================================================

    def _reload_settings(self) -> None:
        session = self._session
        session.enabled = self.settings.get_bool(KEY_ENABLED)
        api_key = self.settings.get_string(KEY_API_KEY)
        if api_key != session.api_key:
            session.api_key = api_key
            self.remote.set_api_key(api_key)
            logger.info(f"[settings] API key {'set' if api_key else 'cleared'}")

    def _maybe_start_onboarding(self) -> None:
        session = self._session
        if not session.enabled or self.settings.get_bool(KEY_ONBOARDING_DONE):
            return
        if session.phase is not Phase.IDLE:
            logger.debug(f"[onboarding] Deferred: phase {session.phase.value}")
            return

        session.session_id += 1
        self._transition(Phase.ONBOARDING)
        # Persisted before speaking so the greeting never plays twice
        self.settings.put_bool(KEY_ONBOARDING_DONE, True)
        self._active_broadcast_open = True
        self._broadcast(BROADCAST_ACTIVE, True)
        self._onboarding_timer = self.scheduler.call_later(
            self.onboarding_broadcast_delay,
            self._on_onboarding_broadcast_elapsed,
            session.session_id,
        )
        self._speak(ONBOARDING_GREETING)

    def _on_onboarding_broadcast_elapsed(self, session_id: int) -> None:
        with self._lock:
            if self._closed or session_id != self._session.session_id:
                return
            self._onboarding_timer = None
            self._close_active_broadcast()

    def _end_onboarding(self) -> None:
        if self._onboarding_timer is not None:
            self._onboarding_timer.cancel()
            self._onboarding_timer = None
        self._close_active_broadcast()
        self._transition(Phase.IDLE)

    # ========================================================================
    # SPOKEN INTERVALS
    # ========================================================================

    def _speak(self, text: str) -> None:
        """Start one guarded spoken interval. Must be the last step of its caller."""
        self._speech_token += 1
        token = self._speech_token
        self._speech_guard = self.scheduler.call_later(
            self.speech_guard_seconds(text), self._on_speech_guard_elapsed, token
        )
        try:
            self.tts.speak_then_invoke(text, partial(self._on_speech_done, token))
        except Exception:
            logger.error(f"[speak] Synthesis failed in {self._session.phase.value}", exc_info=True)
            if self._claim_interval(token):
                self._on_synthesis_failed()

    def speech_guard_seconds(self, text: str) -> float:
        """Base timeout plus a per-word allowance for the utterance."""
        return self.speech_timeout + self.speech_seconds_per_word * len(text.split())

    def _claim_interval(self, token: int) -> bool:
        """True exactly once per interval: for its first completion signal."""
        if self._closed or token != self._speech_token:
            return False
        self._speech_token += 1
        if self._speech_guard is not None:
            self._speech_guard.cancel()
            self._speech_guard = None
        return True

    def _on_speech_done(self, token: int) -> None:
        with self._lock:
            if not self._claim_interval(token):
                logger.debug(f"[speech] Stale completion ignored (token {token})")
                return
            self._advance_after_speech()

    def _on_speech_guard_elapsed(self, token: int) -> None:
        with self._lock:
            if not self._claim_interval(token):
                return
            logger.warning(
                f"[speech] No completion before guard in {self._session.phase.value}"
            )
            self._advance_after_speech()

    def _advance_after_speech(self) -> None:
        phase = self._session.phase
        if phase is Phase.ONBOARDING:
            self._end_onboarding()
        elif phase is Phase.SPEAKING_PROMPT:
            self._transition(Phase.AWAITING_SPEECH_START)
            self._listen_timer = self.scheduler.call_later(
                self.listen_delay, self._begin_listening, self._session.session_id
            )
            if self._listen_timer is None:
                logger.warning("[speech] Scheduler closed; recognizer start dropped")
                self._end_session()
        elif phase is Phase.SPEAKING_RESULT:
            self._end_session()
        else:
            logger.warning(f"[speech] Completion in unexpected phase {phase.value}")

    def _on_synthesis_failed(self) -> None:
        phase = self._session.phase
        if phase is Phase.ONBOARDING:
            self._end_onboarding()
        elif phase in (Phase.SPEAKING_PROMPT, Phase.SPEAKING_RESULT):
            self._end_session()

    # ========================================================================
    # LISTENING
    # ========================================================================

    def _begin_listening(self, session_id: int) -> None:
        with self._lock:
            session = self._session
            if (
                self._closed
                or session_id != session.session_id
                or session.phase is not Phase.AWAITING_SPEECH_START
            ):
                return
            self._listen_timer = None
            self._transition(Phase.LISTENING)
            try:
                self.stt.start_listening(
                    partial(self._on_transcript, session_id),
                    partial(self._on_recognition_error, session_id),
                )
            except Exception:
                logger.error("[listen] Recognizer failed to start", exc_info=True)
                self._on_recognition_error(session_id, RecognitionErrorKind.OTHER)

    def _is_current_listen(self, session_id: int) -> bool:
        session = self._session
        return (
            not self._closed
            and session_id == session.session_id
            and session.phase is Phase.LISTENING
        )

    def _on_transcript(self, session_id: int, transcript: str) -> None:
        with self._lock:
            if not self._is_current_listen(session_id):
                logger.debug(f"[listen] Stale transcript ignored: {transcript!r}")
                return
            self._session.last_transcript = transcript
            self._transition(Phase.PROCESSING)
            logger.info(f"[listen] Transcript: {transcript!r}")

            if not transcript or not transcript.strip():
                self._speak_result(NO_MATCH_RESPONSE)
                return
            if not self.scheduler.submit(self._dispatch, session_id, transcript):
                self._speak_result(GENERIC_ERROR_RESPONSE)

    def _on_recognition_error(self, session_id: int, kind: RecognitionErrorKind) -> None:
        with self._lock:
            if not self._is_current_listen(session_id):
                logger.debug(f"[listen] Stale recognition error ignored: {kind.value}")
                return
            logger.warning(f"[listen] Recognition error: {kind.value}")
            self._transition(Phase.PROCESSING)
            self._speak_result(RECOGNITION_ERROR_RESPONSES.get(kind, GENERIC_ERROR_RESPONSE))

    # ========================================================================
    # PROCESSING
    # ========================================================================

    def _dispatch(self, session_id: int, transcript: str) -> None:
        """Runs on the scheduler worker, outside the lock."""
        try:
            intent = self.classifier.classify(transcript)
            reply = self.executor.execute(intent)
        except Exception:
            logger.exception("[dispatch] Unexpected failure")
            reply = None
        self._on_dispatch_complete(session_id, reply)

    def _on_dispatch_complete(self, session_id: int, reply: Optional[str]) -> None:
        with self._lock:
            session = self._session
            if (
                self._closed
                or session_id != session.session_id
                or session.phase is not Phase.PROCESSING
            ):
                logger.debug(f"[dispatch] Stale result ignored (session {session_id})")
                return
            if not reply:
                self._end_session()
                return
            self._speak_result(reply)

    def _speak_result(self, text: str) -> None:
        self._transition(Phase.SPEAKING_RESULT)
        self._speak(text)

    # ========================================================================
    # BROADCASTS
    # ========================================================================

    def _set_listening_broadcast(self, active: bool) -> None:
        if self._listening_broadcast_open == active:
            return
        self._listening_broadcast_open = active
        self._broadcast(BROADCAST_LISTENING, active)

    def _close_active_broadcast(self) -> None:
        if not self._active_broadcast_open:
            return
        self._active_broadcast_open = False
        self._broadcast(BROADCAST_ACTIVE, False)

    def _broadcast(self, kind: str, payload: Any) -> None:
        try:
            self._broadcast_fn(kind, payload)
        except Exception:
            logger.exception(f"[broadcast] Observer failed for {kind}")

    def _torch_state(self) -> bool:
        with self._lock:
            return self._session.torch_enabled
