"""Centralized constants for lexis.

Scheduling bounds and session defaults live here so every layer imports
from a single source of truth.
"""

# ---------- SRS (intervals are minutes) ----------
MINIMUM_INTERVAL = 10
NEAR_MISS_INTERVAL = 30
MAXIMUM_INTERVAL = 525600  # ~1 year

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
FAILURE_EASE_PENALTY = 0.2

PASSING_QUALITY = 3
REVIEW_HISTORY_LIMIT = 20

# ---------- Adaptive model ----------
DEFAULT_ACCURACY = 0.8
HIGH_ACCURACY = 0.9
LOW_ACCURACY = 0.7
STREAK_BONUS_PER_REVIEW = 0.01
MAX_STREAK_BONUS = 0.2
FORGETTING_CURVE_FLOOR = 0.5
NEAR_MISS_RETENTION = 0.3
EXPECTED_RESPONSE_MS = {"easy": 3000, "medium": 5000, "hard": 8000}
CONSISTENCY_WINDOW = 5
STREAK_WINDOW = 10

# ---------- Session / time tracking ----------
INACTIVITY_THRESHOLD_SECONDS = 30.0

# ---------- Storage ----------
WORDS_KEY = "vocab_words"
REVIEW_EVENTS_KEY = "analytics_reviews"
SESSION_EVENTS_KEY = "analytics_sessions"
MAX_STORED_REVIEW_EVENTS = 1000
MAX_STORED_SESSIONS = 100
REQUEST_TIMEOUT = 10.0
