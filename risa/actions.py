"""
Action sink: the device control surfaces the assistant drives.

Torch, notifications, volume panel, ringer, app launch, Bluetooth, media keys
and the companion assistant app. Concrete bindings are host-specific.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from risa.intent_parser import MediaOp, RingerMode

logger = logging.getLogger("RISA.Actions")


class ActionSink(ABC):

    @abstractmethod
    def toggle_torch(self) -> None:
        pass

    @abstractmethod
    def clear_notifications(self) -> None:
        pass

    @abstractmethod
    def show_volume_panel(self) -> None:
        pass

    @abstractmethod
    def set_ringer_mode(self, mode: RingerMode) -> None:
        pass

    @abstractmethod
    def launch_app(self, package_id: str, freeform: bool = False) -> bool:
        """Launch a package. Returns False when it has no launch entry point."""
        pass

    @abstractmethod
    def toggle_bluetooth(self) -> None:
        pass

    @abstractmethod
    def media_control(self, op: MediaOp) -> None:
        pass

    @abstractmethod
    def launch_companion_app(self) -> None:
        pass

    def has_vibrator(self) -> bool:
        return True


class LoggingActionSink(ActionSink):
    """Records every action in the log. Used by the console host."""

    def __init__(self, vibrator: bool = True, on_torch_change: Optional[Callable[[bool], None]] = None):
        self._vibrator = vibrator
        self.on_torch_change = on_torch_change
        self.torch_on = False

    def toggle_torch(self) -> None:
        self.torch_on = not self.torch_on
        logger.info(f"[Action] torch -> {'on' if self.torch_on else 'off'}")
        # Torch state lives outside the assistant; report it back
        if self.on_torch_change is not None:
            self.on_torch_change(self.torch_on)

    def clear_notifications(self) -> None:
        logger.info("[Action] clear notifications")

    def show_volume_panel(self) -> None:
        logger.info("[Action] show volume panel")

    def set_ringer_mode(self, mode: RingerMode) -> None:
        logger.info(f"[Action] ringer mode -> {mode.value}")

    def launch_app(self, package_id: str, freeform: bool = False) -> bool:
        logger.info(f"[Action] launch {package_id} freeform={freeform}")
        return True

    def toggle_bluetooth(self) -> None:
        logger.info("[Action] toggle bluetooth")

    def media_control(self, op: MediaOp) -> None:
        logger.info(f"[Action] media {op.value}")

    def launch_companion_app(self) -> None:
        logger.info("[Action] launch companion assistant")

    def has_vibrator(self) -> bool:
        return self._vibrator
