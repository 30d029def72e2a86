"""
Policy Module (Centralized Timeouts, Thresholds & Spoken Fallbacks)

Constants only. No side effects. No imports from other RISA modules.
"""

# Gesture thresholds (pointer units)
SWIPE_MIN_DELTA_Y = 50
SWIPE_MAX_DELTA_X = 300

# Fuzzy app match acceptance floor (strictly greater than)
APP_MATCH_MIN_SIMILARITY = 0.5

# Remote language backend
REMOTE_TIMEOUT_SECONDS = 30

# Delay between prompt completion and recognizer start
LISTEN_DELAY_SECONDS = 0.5

# Guard for a spoken interval whose completion callback never arrives:
# base + per-word allowance, so long replies finish before the guard fires
SPEECH_TIMEOUT_SECONDS = 30
SPEECH_SECONDS_PER_WORD = 0.6

# Onboarding "assistant active" pairing delay
ONBOARDING_BROADCAST_SECONDS = 8.0

# Fixed spoken lines
LISTENING_PROMPT = "Hi, what can I do for you?"
ONBOARDING_GREETING = (
    "Hello, I am Risa, your daily assistant. To ask for my help, "
    "please perform a two-finger swipe down gesture. Have a great day."
)
NO_MATCH_RESPONSE = "I didn't catch that. Please try again."
NETWORK_ERROR_RESPONSE = "Network error. Please check your connection."
GENERIC_ERROR_RESPONSE = "Sorry, something went wrong. Please try again."
REMOTE_FALLBACK_RESPONSE = "Sorry, i'm having trouble staying in touch with Gemini."
BRIEF_QUERY_PREFIX = "Please provide a brief summary: "
