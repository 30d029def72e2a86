#!/usr/bin/env python3
"""
RISA Console Host

Binds every collaborator to a console implementation and drives the
interaction state machine from stdin:

    swipe                 two-finger swipe down
    unlock                device unlocked (gestures are ignored until then)
    enable / disable      toggle the assistant feature flag
    key <api-key>         store the remote API key
    error <kind>          recognition error: no-match | network | other
    torch on|off          report external torch state
    quit                  exit
    anything else         delivered as the final transcript while listening

Usage:
    python main.py
    RISA_CONFIG=my_config.json RISA_LOG_LEVEL=DEBUG python main.py
"""

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from risa.actions import LoggingActionSink
from risa.app_resolver import StaticApplicationCatalog
from risa.config import API_KEY_ENV, load_config
from risa.gesture import GestureEvent
from risa.remote_query import RemoteQueryAdapter
from risa.scheduler import TaskScheduler
from risa.settings_store import KEY_API_KEY, KEY_ENABLED, JsonSettingsStore
from risa.speech_to_text import QueuedSpeechToText, RecognitionErrorKind
from risa.state_machine import InteractionStateMachine
from risa.text_to_speech import ConsoleTextToSpeech
from risa.version import get_version

load_dotenv(Path(__file__).parent / ".env")

logger = logging.getLogger("RISA.Main")

SWIPE_DOWN = GestureEvent.move((200, 300), (260, 420))

ERROR_KINDS = {
    "no-match": RecognitionErrorKind.NO_MATCH,
    "network": RecognitionErrorKind.NETWORK,
    "other": RecognitionErrorKind.OTHER,
}


def build_machine(config):
    settings = JsonSettingsStore(config.get("settings.path"))
    env_key = os.getenv(API_KEY_ENV)
    if env_key and not settings.get_string(KEY_API_KEY):
        settings.put_string(KEY_API_KEY, env_key)
        logger.info(f"[main] API key seeded from ${API_KEY_ENV}")

    stt = QueuedSpeechToText()
    tts = ConsoleTextToSpeech()
    actions = LoggingActionSink()
    scheduler = TaskScheduler()
    machine = InteractionStateMachine(
        settings=settings,
        stt=stt,
        tts=tts,
        actions=actions,
        catalog=StaticApplicationCatalog.from_config(config),
        remote=RemoteQueryAdapter.from_config(config),
        scheduler=scheduler,
        config=config,
    )
    actions.on_torch_change = machine.set_torch_enabled
    return machine, settings, stt, tts, actions, scheduler


def handle_line(line, machine, settings, stt, actions) -> bool:
    """Apply one console command. Returns False to exit."""
    command, _, arg = line.strip().partition(" ")
    command = command.lower()
    arg = arg.strip()

    if not command:
        return True
    if command in ("quit", "exit"):
        return False
    if command == "swipe":
        if not machine.on_pointer_event(SWIPE_DOWN):
            print(f"[ignored] phase={machine.phase.value}")
    elif command == "unlock":
        machine.on_device_unlocked()
    elif command in ("enable", "disable"):
        settings.put_bool(KEY_ENABLED, command == "enable")
    elif command == "key":
        settings.put_string(KEY_API_KEY, arg)
    elif command == "torch" and arg in ("on", "off"):
        actions.torch_on = arg == "on"
        machine.set_torch_enabled(actions.torch_on)
    elif command == "error" and arg in ERROR_KINDS:
        if not stt.feed_error(ERROR_KINDS[arg]):
            print("[ignored] not listening")
    elif not stt.feed(line.strip()):
        print("[ignored] not listening")
    return True


def main():
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, str(config.get("system.log_level", "INFO")).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"RISA {get_version()['version']} (config {config.hash[:12]})")

    machine, settings, stt, tts, actions, scheduler = build_machine(config)
    machine.start()

    print("RISA console. Commands: swipe, unlock, enable, disable, key <k>, error <kind>, torch on|off, quit")
    try:
        for line in sys.stdin:
            if not handle_line(line, machine, settings, stt, actions):
                break
    except KeyboardInterrupt:
        pass
    finally:
        machine.shutdown()
        scheduler.shutdown(wait=True)
        tts.shutdown()
        logger.info("RISA stopped")


if __name__ == "__main__":
    main()
