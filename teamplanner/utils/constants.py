"""
Constants used across the planner (server and client).
"""

# Roster
MAX_ACTIVE_PLAYERS = 6
DEFAULT_PLAYER_NAMES = ["Mirko", "Toby", "Tom", "Denis", "Josh", "Jannis"]

# Grid hours
DEFAULT_HOURS = ["19", "20", "21", "22", "23"]
AVAILABLE_EARLY_HOURS = ["10", "11", "12", "13", "14", "15", "16", "17", "18"]

# Schedule window
WINDOW_DAYS = 14
WINDOW_START_WEEKDAY = 4  # Friday (Monday == 0)

# Play-day detection
MIN_PLAYERS_FOR_PLAY_DAY = 5
MIN_PLAY_DAY_HOURS = 2

# Client timings (seconds)
UPDATE_DEBOUNCE_SECONDS = 0.3
FOLLOW_UP_FLUSH_SECONDS = 0.1
USER_ACTIVITY_QUIET_SECONDS = 2.0
POLL_INTERVAL_SECONDS = 5.0
ERROR_FADE_IN_SECONDS = 0.05
ERROR_HOLD_SECONDS = 4.0
ERROR_FADE_OUT_SECONDS = 0.3

# Failed writes are attempted at most this many times in total
MAX_WRITE_ATTEMPTS = 3
