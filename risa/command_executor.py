"""
Command Executor Module

Responsibility: Execute one classified intent and return the sentence to speak.

Examples:
- TOGGLE_TORCH → ActionSink.toggle_torch(), "Torch successfully turned on"
- LAUNCH_APP "chroem" → AppResolver → ActionSink.launch_app(...)
- GENERAL_QUERY → RemoteQueryAdapter.query(...)

Does NOT:
- Classify text (CommandClassifier's job)
- Speak (the state machine speaks the returned sentence)
- Manage phases or timers

Failures:
- Unresolved app / no launch entry point → spoken "not found" reply
- Remote failures → the adapter's fixed apology (never raises)
- An action that raises → logged and swallowed, returns None (nothing spoken)

Blocking (remote query). Runs on the scheduler worker, never on a callback path.
"""

import logging
from typing import Callable, Dict, Optional

from risa.actions import ActionSink
from risa.app_resolver import AppResolver, normalize_app_name
from risa.intent_parser import Intent, IntentType, MediaOp, RingerMode
from risa.remote_query import RemoteQueryAdapter

logger = logging.getLogger(__name__)

UNIDENTIFIED_APP_RESPONSE = "Sorry, I couldn't identify the application."
NO_VIBRATOR_RESPONSE = "Device does not support vibrate mode."

RINGER_RESPONSES = {
    RingerMode.SILENT: "Ringer mode successfully set to silent mode",
    RingerMode.VIBRATE: "Ringer mode successfully set to vibrate mode",
    RingerMode.NORMAL: "Ringer mode successfully set to normal mode",
}

MEDIA_RESPONSES = {
    MediaOp.PLAY: "Playing media.",
    MediaOp.PAUSE: "Pausing media.",
    MediaOp.NEXT: "Skipping to the next track.",
    MediaOp.PREVIOUS: "Going back to the previous track.",
}


class CommandExecutor:
    """
    Dispatch table from IntentType to handler.

    torch_state: callable returning the externally tracked torch state,
    read before toggling to word the reply.
    """

    def __init__(
        self,
        actions: ActionSink,
        resolver: AppResolver,
        remote: RemoteQueryAdapter,
        torch_state: Optional[Callable[[], bool]] = None,
    ):
        self.actions = actions
        self.resolver = resolver
        self.remote = remote
        self._torch_state = torch_state or (lambda: False)
        self._handlers: Dict[IntentType, Callable[[Intent], Optional[str]]] = {
            IntentType.TOGGLE_TORCH: self._toggle_torch,
            IntentType.CLEAR_NOTIFICATIONS: self._clear_notifications,
            IntentType.SHOW_VOLUME_PANEL: self._show_volume_panel,
            IntentType.SET_RINGER_MODE: self._set_ringer_mode,
            IntentType.LAUNCH_APP: self._launch_app,
            IntentType.TOGGLE_BLUETOOTH: self._toggle_bluetooth,
            IntentType.BRIEF_QUERY: self._brief_query,
            IntentType.OPEN_COMPANION_ASSISTANT: self._open_companion,
            IntentType.MEDIA_CONTROL: self._media_control,
            IntentType.GENERAL_QUERY: self._general_query,
        }

    def execute(self, intent: Intent) -> Optional[str]:
        handler = self._handlers[intent.intent_type]
        logger.info(f"[execute] {intent}")
        try:
            return handler(intent)
        except Exception:
            logger.exception(f"[execute] Action for {intent.intent_type.value} failed")
            return None

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _toggle_torch(self, intent: Intent) -> str:
        was_on = self._torch_state()
        self.actions.toggle_torch()
        return "Torch has been disabled" if was_on else "Torch successfully turned on"

    def _clear_notifications(self, intent: Intent) -> str:
        self.actions.clear_notifications()
        return "All notifications cleared"

    def _show_volume_panel(self, intent: Intent) -> str:
        self.actions.show_volume_panel()
        return "Showing the volume panel."

    def _set_ringer_mode(self, intent: Intent) -> str:
        mode = intent.ringer_mode
        if mode is RingerMode.VIBRATE and not self.actions.has_vibrator():
            return NO_VIBRATOR_RESPONSE
        self.actions.set_ringer_mode(mode)
        return RINGER_RESPONSES[mode]

    def _launch_app(self, intent: Intent) -> Optional[str]:
        label = self.resolver.resolve(intent.app_name or "")
        if label is None:
            logger.info(f"[launch] Unresolved fragment {intent.app_name!r}")
            return UNIDENTIFIED_APP_RESPONSE

        label = normalize_app_name(label)
        package_id = self.resolver.package_for(label)
        if package_id is None or not self.actions.launch_app(package_id, freeform=intent.freeform):
            return f"App not found: {label}"
        if intent.freeform:
            return f"Sure thing! Launching {label} in freeform mode"
        return f"Sure thing! Launching {label}"

    def _toggle_bluetooth(self, intent: Intent) -> str:
        self.actions.toggle_bluetooth()
        return "Toggling Bluetooth."

    def _open_companion(self, intent: Intent) -> str:
        try:
            self.actions.launch_companion_app()
        except Exception as e:
            logger.warning(f"[companion] Launch failed: {e}")
        return "Sure thing! Trying to establish connection with chat gpt"

    def _media_control(self, intent: Intent) -> str:
        self.actions.media_control(intent.media_op)
        return MEDIA_RESPONSES[intent.media_op]

    def _brief_query(self, intent: Intent) -> str:
        return self.remote.query(intent.query or intent.raw_text, brief=True)

    def _general_query(self, intent: Intent) -> str:
        return self.remote.query(intent.query or intent.raw_text, brief=False)
