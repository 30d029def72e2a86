"""RISA version registry.

Single source of truth for runtime versioning.
"""

CURRENT_VERSION = "0.3.0"
CURRENT_MILESTONE = "gesture-session+remote-fallback"
CURRENT_DATE = "2026-10-19"

VERSION_HISTORY = [
    {
        "version": "0.1.0",
        "date": "2026-09-02",
        "notes": "Swipe gate, keyword classifier, app launch by label",
    },
    {
        "version": "0.2.0",
        "date": "2026-09-28",
        "notes": "Fuzzy app resolution, media and ringer commands, onboarding greeting",
    },
    {
        "version": "0.3.0",
        "date": CURRENT_DATE,
        "notes": "Single-flight session machine with guarded speech callbacks",
    },
]


def get_version():
    return {
        "version": CURRENT_VERSION,
        "milestone": CURRENT_MILESTONE,
        "date": CURRENT_DATE,
        "history": VERSION_HISTORY,
    }
