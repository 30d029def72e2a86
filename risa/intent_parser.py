"""
Command Classifier Module

Responsibility: Convert a recognized transcript to one structured intent.
Nothing more.

Does NOT:
- Resolve application names (AppResolver's job)
- Trigger actions (CommandExecutor's job)
- Call external services (completely local)
- Maintain memory (stateless)

Rules are an ordered table of (predicate, builder) pairs. The first rule whose
predicate matches wins, so narrow rules sit above broad ones and the general
query fallback is always last.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional
import logging
import re

logger = logging.getLogger(__name__)


class IntentType(Enum):
    """Supported intent classifications."""
    TOGGLE_TORCH = "toggle_torch"
    CLEAR_NOTIFICATIONS = "clear_notifications"
    SHOW_VOLUME_PANEL = "show_volume_panel"
    SET_RINGER_MODE = "set_ringer_mode"
    LAUNCH_APP = "launch_app"
    TOGGLE_BLUETOOTH = "toggle_bluetooth"
    BRIEF_QUERY = "brief_query"
    OPEN_COMPANION_ASSISTANT = "open_companion_assistant"
    MEDIA_CONTROL = "media_control"
    GENERAL_QUERY = "general_query"


class RingerMode(Enum):
    SILENT = "silent"
    VIBRATE = "vibrate"
    NORMAL = "normal"


class MediaOp(Enum):
    PLAY = "play"
    PAUSE = "pause"
    NEXT = "next"
    PREVIOUS = "previous"


@dataclass(frozen=True)
class Intent:
    """
    Structured intent extracted from a transcript.

    Only the fields relevant to `intent_type` are set:
    - LAUNCH_APP: app_name (raw fragment), freeform
    - SET_RINGER_MODE: ringer_mode
    - MEDIA_CONTROL: media_op
    - BRIEF_QUERY / GENERAL_QUERY: query
    """
    intent_type: IntentType
    raw_text: str
    app_name: Optional[str] = None
    freeform: bool = False
    ringer_mode: Optional[RingerMode] = None
    media_op: Optional[MediaOp] = None
    query: Optional[str] = None

    def __str__(self) -> str:
        extras = []
        if self.app_name is not None:
            extras.append(f"app='{self.app_name}'")
        if self.freeform:
            extras.append("freeform=true")
        if self.ringer_mode is not None:
            extras.append(f"mode={self.ringer_mode.value}")
        if self.media_op is not None:
            extras.append(f"op={self.media_op.value}")
        extra_str = (", " + ", ".join(extras)) if extras else ""
        return f"Intent({self.intent_type.value}{extra_str}, text='{self.raw_text[:50]}')"


# ============================================================================
# KEYWORD TABLES
# ============================================================================

TORCH_TRIGGERS = ("turn on", "turn off", "switch on", "switch off", "toggle")
TORCH_TARGETS = ("torch", "flashlight")

CLEAR_NOTIFICATION_PHRASES = (
    "clear all notifications",
    "clear notifications",
    "clear my notifications",
)

VOLUME_PANEL_PHRASES = ("show volume panel", "show volume")

# Checked in this order; the first contained token wins
RINGER_MODE_TOKENS = (
    ("silent", RingerMode.SILENT),
    ("vibrate", RingerMode.VIBRATE),
    ("normal", RingerMode.NORMAL),
)

LAUNCH_TRIGGERS = {"open", "launch"}
LAUNCH_STOP_WORDS = {"in", "free", "form"}
FREEFORM_MARKERS = ("in free form", "in freeform")

BLUETOOTH_TRIGGERS = ("turn on", "turn off", "switch on", "switch off", "toggle", "enable", "disable")

BRIEF_QUERY_OPENERS = {"what", "when", "why", "who", "where", "how"}

COMPANION_PHRASES = ("chat gpt", "chatgpt")

MEDIA_VERBS = ("stop", "play", "pause", "skip", "next", "previous", "return")
MEDIA_NOUNS = ("song", "music", "media")

# Sub-classification tiers, checked in order
MEDIA_TIERS = (
    (MediaOp.PLAY, ("play",)),
    (MediaOp.PAUSE, ("stop", "pause", "halt")),
    (MediaOp.NEXT, ("next", "skip", "fast forward")),
    (MediaOp.PREVIOUS, ("previous", "return", "last")),
)

_PUNCTUATION = re.compile(r"[.,!?;:\"]+")


def normalize_transcript(text: str) -> str:
    """Case-fold, drop sentence punctuation, collapse whitespace."""
    text = _PUNCTUATION.sub(" ", (text or "").casefold())
    return " ".join(text.split())


def _contains_any(text: str, phrases) -> bool:
    return any(phrase in text for phrase in phrases)


def extract_app_fragment(text: str) -> Optional[str]:
    """
    Words after the first open/launch trigger, up to a stop word.

    "open camera in freeform" -> "camera". None when there is no trigger word
    or nothing follows it.
    """
    words = text.split()
    trigger_index = next((i for i, w in enumerate(words) if w in LAUNCH_TRIGGERS), -1)
    if trigger_index == -1 or trigger_index + 1 >= len(words):
        return None
    fragment = []
    for word in words[trigger_index + 1:]:
        if word in LAUNCH_STOP_WORDS:
            break
        fragment.append(word)
    return " ".join(fragment)


def extract_ringer_mode(text: str) -> Optional[RingerMode]:
    for token, mode in RINGER_MODE_TOKENS:
        if token in text:
            return mode
    return None


def extract_media_op(text: str) -> Optional[MediaOp]:
    for op, keywords in MEDIA_TIERS:
        if _contains_any(text, keywords):
            return op
    return None


def _first_word(text: str) -> str:
    words = text.split()
    if not words:
        return ""
    first = words[0]
    if first.endswith("'s"):
        first = first[:-2]
    return first


# ============================================================================
# RULE TABLE
# ============================================================================

@dataclass(frozen=True)
class ClassificationRule:
    name: str
    matches: Callable[[str], bool]
    build: Callable[[str], Intent]


def _is_torch(text: str) -> bool:
    return _contains_any(text, TORCH_TRIGGERS) and _contains_any(text, TORCH_TARGETS)


def _is_bluetooth(text: str) -> bool:
    return "bluetooth" in text and _contains_any(text, BLUETOOTH_TRIGGERS)


def _is_launch(text: str) -> bool:
    # Trigger must open the command; "how do i open an account" is a question
    return _first_word(text) in LAUNCH_TRIGGERS and extract_app_fragment(text) is not None


def _is_media(text: str) -> bool:
    return _contains_any(text, MEDIA_VERBS) and _contains_any(text, MEDIA_NOUNS)


def _build_launch(text: str) -> Intent:
    return Intent(
        intent_type=IntentType.LAUNCH_APP,
        raw_text=text,
        app_name=extract_app_fragment(text),
        freeform=_contains_any(text, FREEFORM_MARKERS),
    )


DEFAULT_RULES: List[ClassificationRule] = [
    ClassificationRule(
        "torch",
        _is_torch,
        lambda t: Intent(IntentType.TOGGLE_TORCH, raw_text=t),
    ),
    ClassificationRule(
        "clear_notifications",
        lambda t: _contains_any(t, CLEAR_NOTIFICATION_PHRASES),
        lambda t: Intent(IntentType.CLEAR_NOTIFICATIONS, raw_text=t),
    ),
    ClassificationRule(
        "volume_panel",
        lambda t: _contains_any(t, VOLUME_PANEL_PHRASES),
        lambda t: Intent(IntentType.SHOW_VOLUME_PANEL, raw_text=t),
    ),
    ClassificationRule(
        "ringer_mode",
        lambda t: extract_ringer_mode(t) is not None,
        lambda t: Intent(IntentType.SET_RINGER_MODE, raw_text=t, ringer_mode=extract_ringer_mode(t)),
    ),
    ClassificationRule("launch_app", _is_launch, _build_launch),
    ClassificationRule(
        "bluetooth",
        _is_bluetooth,
        lambda t: Intent(IntentType.TOGGLE_BLUETOOTH, raw_text=t),
    ),
    ClassificationRule(
        "brief_query",
        lambda t: _first_word(t) in BRIEF_QUERY_OPENERS,
        lambda t: Intent(IntentType.BRIEF_QUERY, raw_text=t, query=t),
    ),
    ClassificationRule(
        "companion_assistant",
        lambda t: _contains_any(t, COMPANION_PHRASES),
        lambda t: Intent(IntentType.OPEN_COMPANION_ASSISTANT, raw_text=t),
    ),
    ClassificationRule(
        "media_control",
        _is_media,
        lambda t: Intent(IntentType.MEDIA_CONTROL, raw_text=t, media_op=extract_media_op(t)),
    ),
]


class CommandClassifier:
    """
    Ordered, first-match-wins keyword classifier.

    classify() is total: anything no rule claims becomes a GENERAL_QUERY.
    """

    def __init__(self, rules: Optional[List[ClassificationRule]] = None):
        self.rules = list(DEFAULT_RULES if rules is None else rules)

    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules] + ["general_query"]

    def classify(self, transcript: str) -> Intent:
        text = normalize_transcript(transcript)
        if text:
            for rule in self.rules:
                if rule.matches(text):
                    intent = rule.build(text)
                    logger.debug(f"[classify] rule={rule.name} -> {intent}")
                    return intent
        return Intent(IntentType.GENERAL_QUERY, raw_text=text, query=text)
