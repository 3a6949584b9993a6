"""
Global hotkeys using pynput.

Works while the game has focus. Modifier tracking is an explicit immutable
ModifierState so matching can be tested without a keyboard hook.
"""

import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from tft_scout.logging import get_logger

logger = get_logger(__name__)

HotkeyCallback = Callable[[], None]

# pynput key names -> modifier
_MODIFIER_NAMES = {
    "ctrl": "ctrl", "ctrl_l": "ctrl", "ctrl_r": "ctrl",
    "alt": "alt", "alt_l": "alt", "alt_r": "alt", "alt_gr": "alt",
    "shift": "shift", "shift_l": "shift", "shift_r": "shift",
}

_SPECIAL_KEYS = {"space": "SPACE", "tab": "TAB", "enter": "ENTER"}


def key_name(key: Any) -> str:
    """
    Normalize a pynput key to a name.

    Modifiers come back lower-case ("ctrl", "alt", "shift"); every other key
    upper-case ("F3", "A", "SPACE"). Unknown keys give "".
    """
    name = getattr(key, "name", None)
    if name:
        name = name.lower()
        if name in _MODIFIER_NAMES:
            return _MODIFIER_NAMES[name]
        return _SPECIAL_KEYS.get(name, name.upper())

    char = getattr(key, "char", None)
    if char:
        # Ctrl+letter arrives as a control character on some platforms
        if len(char) == 1 and ord(char) < 32:
            return chr(ord(char) + 64)
        return char.upper()

    vk = getattr(key, "vk", None)
    if vk is not None and (0x30 <= vk <= 0x39 or 0x41 <= vk <= 0x5A):
        return chr(vk)

    return ""


@dataclass(frozen=True)
class ModifierState:
    """Which modifiers are currently held."""

    ctrl: bool = False
    alt: bool = False
    shift: bool = False

    @staticmethod
    def is_modifier(name: str) -> bool:
        return name in ("ctrl", "alt", "shift")

    def on_key_down(self, name: str) -> "ModifierState":
        if self.is_modifier(name):
            return replace(self, **{name: True})
        return self

    def on_key_up(self, name: str) -> "ModifierState":
        if self.is_modifier(name):
            return replace(self, **{name: False})
        return self


@dataclass(frozen=True)
class Accelerator:
    """Parsed hotkey such as "Ctrl+Shift+S"."""

    ctrl: bool
    alt: bool
    shift: bool
    key: str

    @classmethod
    def parse(cls, accelerator: str) -> "Accelerator":
        """
        Parse a '+'-joined accelerator. Modifiers are case-insensitive and
        the key is upper-cased. key is "" when no non-modifier is present.
        """
        ctrl = alt = shift = False
        key = ""
        for part in accelerator.split("+"):
            part = part.strip()
            lower = part.lower()
            if lower in ("ctrl", "control"):
                ctrl = True
            elif lower == "alt":
                alt = True
            elif lower == "shift":
                shift = True
            elif part:
                key = part.upper()
        return cls(ctrl=ctrl, alt=alt, shift=shift, key=key)

    def matches(self, state: ModifierState, name: str) -> bool:
        """Exact match: extra held modifiers prevent a match."""
        return (
            state.ctrl == self.ctrl
            and state.alt == self.alt
            and state.shift == self.shift
            and name == self.key
        )


@dataclass
class RegisteredHotkey:
    accelerator: Accelerator
    callback: HotkeyCallback


class HotkeyManager:
    """
    Global hotkey listener.

    Callbacks run on their own daemon thread so a slow capture never blocks
    the keyboard hook.
    """

    def __init__(self, threaded_callbacks: bool = True):
        self.threaded_callbacks = threaded_callbacks
        self._hotkeys: Dict[str, RegisteredHotkey] = {}
        self._state = ModifierState()
        self._listener: Optional[Any] = None
        self._lock = threading.RLock()

    @property
    def state(self) -> ModifierState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._listener is not None

    def register(self, accelerator: str, callback: HotkeyCallback) -> bool:
        """
        Register a hotkey.

        Returns:
            False if the accelerator has no non-modifier key
        """
        parsed = Accelerator.parse(accelerator)
        if not parsed.key:
            logger.error("Invalid accelerator", accelerator=accelerator)
            return False

        with self._lock:
            self._hotkeys[accelerator] = RegisteredHotkey(parsed, callback)
        logger.info("Registered hotkey", accelerator=accelerator)
        return True

    def unregister(self, accelerator: str) -> None:
        with self._lock:
            self._hotkeys.pop(accelerator, None)

    def start(self) -> None:
        """Start the keyboard listener."""
        if self._listener is not None:
            return

        from pynput import keyboard

        self._listener = keyboard.Listener(
            on_press=self._on_press,
            on_release=self._on_release,
        )
        self._listener.start()
        logger.info("Hotkey listener started")

    def stop(self) -> None:
        """Stop the listener and drop all registrations."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            logger.info("Hotkey listener stopped")
        with self._lock:
            self._hotkeys.clear()
            self._state = ModifierState()

    def handle_key_down(self, name: str) -> Optional[str]:
        """
        Feed a normalized key-down event.

        Returns:
            The accelerator that fired, if any
        """
        with self._lock:
            if ModifierState.is_modifier(name):
                self._state = self._state.on_key_down(name)
                return None

            for accelerator, hotkey in self._hotkeys.items():
                if hotkey.accelerator.matches(self._state, name):
                    logger.info("Hotkey triggered", accelerator=accelerator)
                    self._dispatch(accelerator, hotkey.callback)
                    return accelerator
        return None

    def handle_key_up(self, name: str) -> None:
        with self._lock:
            self._state = self._state.on_key_up(name)

    def _on_press(self, key: Any) -> None:
        self.handle_key_down(key_name(key))

    def _on_release(self, key: Any) -> None:
        self.handle_key_up(key_name(key))

    def _dispatch(self, accelerator: str, callback: HotkeyCallback) -> None:
        if self.threaded_callbacks:
            thread = threading.Thread(
                target=self._run_callback,
                args=(accelerator, callback),
                name=f"hotkey-{accelerator}",
                daemon=True,
            )
            thread.start()
        else:
            self._run_callback(accelerator, callback)

    @staticmethod
    def _run_callback(accelerator: str, callback: HotkeyCallback) -> None:
        try:
            callback()
        except Exception as e:
            logger.error("Error in hotkey callback", accelerator=accelerator, error=str(e), exc_info=True)
