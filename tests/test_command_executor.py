"""
TEST: Command Executor

Each intent drives exactly one action and returns the sentence to speak.
"""

from unittest.mock import MagicMock

import pytest

from risa.app_resolver import AppCatalogEntry, AppResolver
from risa.command_executor import CommandExecutor
from risa.intent_parser import CommandClassifier, Intent, IntentType, MediaOp, RingerMode
from risa.policy import REMOTE_FALLBACK_RESPONSE


class DummyActions:
    def __init__(self, vibrator=True, launchable=True):
        self.calls = []
        self._vibrator = vibrator
        self._launchable = launchable

    def toggle_torch(self):
        self.calls.append(("toggle_torch",))

    def clear_notifications(self):
        self.calls.append(("clear_notifications",))

    def show_volume_panel(self):
        self.calls.append(("show_volume_panel",))

    def set_ringer_mode(self, mode):
        self.calls.append(("set_ringer_mode", mode))

    def launch_app(self, package_id, freeform=False):
        self.calls.append(("launch_app", package_id, freeform))
        return self._launchable

    def toggle_bluetooth(self):
        self.calls.append(("toggle_bluetooth",))

    def media_control(self, op):
        self.calls.append(("media_control", op))

    def launch_companion_app(self):
        self.calls.append(("launch_companion_app",))
        raise RuntimeError("companion not installed")

    def has_vibrator(self):
        return self._vibrator


CATALOG = [
    AppCatalogEntry("camera", "com.android.camera"),
    AppCatalogEntry("chrome", "com.android.chrome"),
    AppCatalogEntry("advanced settings", "com.android.settings.advanced"),
    AppCatalogEntry("settings", "com.android.settings"),
]


def make_executor(actions=None, torch_on=False):
    actions = actions or DummyActions()
    remote = MagicMock()
    remote.query.return_value = "It is sunny."
    executor = CommandExecutor(actions, AppResolver(CATALOG), remote, torch_state=lambda: torch_on)
    return executor, actions, remote


def run(executor, text):
    return executor.execute(CommandClassifier().classify(text))


def test_clear_notifications():
    executor, actions, _ = make_executor()
    assert run(executor, "clear all notifications") == "All notifications cleared"
    assert actions.calls == [("clear_notifications",)]


def test_torch_reply_follows_external_state():
    executor, actions, _ = make_executor(torch_on=False)
    assert run(executor, "turn on torch") == "Torch successfully turned on"
    executor, actions, _ = make_executor(torch_on=True)
    assert run(executor, "turn off torch") == "Torch has been disabled"
    assert actions.calls == [("toggle_torch",)]


def test_volume_panel_and_bluetooth():
    executor, actions, _ = make_executor()
    assert run(executor, "show volume panel") == "Showing the volume panel."
    assert run(executor, "toggle bluetooth") == "Toggling Bluetooth."
    assert actions.calls == [("show_volume_panel",), ("toggle_bluetooth",)]


def test_ringer_modes():
    executor, actions, _ = make_executor()
    assert run(executor, "silent mode") == "Ringer mode successfully set to silent mode"
    assert run(executor, "vibrate") == "Ringer mode successfully set to vibrate mode"
    assert actions.calls == [
        ("set_ringer_mode", RingerMode.SILENT),
        ("set_ringer_mode", RingerMode.VIBRATE),
    ]


def test_vibrate_without_vibrator():
    executor, actions, _ = make_executor(DummyActions(vibrator=False))
    assert run(executor, "set phone to vibrate") == "Device does not support vibrate mode."
    assert actions.calls == []


def test_launch_resolved_app():
    executor, actions, _ = make_executor()
    assert run(executor, "open chroem") == "Sure thing! Launching chrome"
    assert actions.calls == [("launch_app", "com.android.chrome", False)]


def test_launch_freeform():
    executor, actions, _ = make_executor()
    assert run(executor, "open camera in freeform") == "Sure thing! Launching camera in freeform mode"
    assert actions.calls == [("launch_app", "com.android.camera", True)]


def test_launch_alias():
    executor, actions, _ = make_executor()
    assert run(executor, "open advanced settings") == "Sure thing! Launching settings"
    assert actions.calls == [("launch_app", "com.android.settings", False)]


def test_launch_unresolved():
    executor, actions, _ = make_executor()
    assert run(executor, "open zzz") == "Sorry, I couldn't identify the application."
    assert actions.calls == []


def test_launch_without_entry_point():
    executor, actions, _ = make_executor(DummyActions(launchable=False))
    assert run(executor, "launch camera") == "App not found: camera"


def test_companion_reply_spoken_even_if_launch_fails():
    executor, actions, _ = make_executor()
    reply = run(executor, "talk to chatgpt")
    assert reply == "Sure thing! Trying to establish connection with chat gpt"
    assert actions.calls == [("launch_companion_app",)]


@pytest.mark.parametrize(
    "text, op, reply",
    [
        ("play some music", MediaOp.PLAY, "Playing media."),
        ("pause the song", MediaOp.PAUSE, "Pausing media."),
        ("next song", MediaOp.NEXT, "Skipping to the next track."),
        ("previous song", MediaOp.PREVIOUS, "Going back to the previous track."),
    ],
)
def test_media(text, op, reply):
    executor, actions, _ = make_executor()
    assert run(executor, text) == reply
    assert actions.calls == [("media_control", op)]


def test_queries_go_to_remote():
    executor, actions, remote = make_executor()
    assert run(executor, "what is the weather") == "It is sunny."
    remote.query.assert_called_with("what is the weather", brief=True)
    run(executor, "tell me a joke")
    remote.query.assert_called_with("tell me a joke", brief=False)
    assert actions.calls == []


def test_remote_fallback_passes_through():
    executor, _, remote = make_executor()
    remote.query.return_value = REMOTE_FALLBACK_RESPONSE
    assert run(executor, "tell me a joke") == REMOTE_FALLBACK_RESPONSE


def test_action_failure_is_swallowed():
    actions = DummyActions()
    actions.clear_notifications = MagicMock(side_effect=RuntimeError("denied"))
    executor, _, _ = make_executor(actions)
    assert executor.execute(Intent(IntentType.CLEAR_NOTIFICATIONS, raw_text="clear notifications")) is None
