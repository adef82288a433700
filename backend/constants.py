# backend/constants.py
"""Application constants - single source of truth for configuration values."""

# Availability a roster member can declare for a match, event or activity
AVAILABILITY_STATUSES = ["available", "unavailable", "maybe", "late", "last_resort"]

# Statuses surfaced as assignable candidates in the lineup builder
ASSIGNABLE_STATUSES = {"available", "maybe", "late"}

STATUS_LABELS = {
    "available": "Available",
    "unavailable": "Unavailable",
    "maybe": "Maybe",
    "late": "Late",
    "last_resort": "Last Resort",
}
STATUS_LABEL_NOT_SET = "Not Set"

# Lines (courts) played in a match
LINE_TYPES = ["singles", "doubles", "mixed"]
LINE_TYPE_LABELS = {
    "singles": "Singles Match",
    "doubles": "Doubles Match",
    "mixed": "Mixed Doubles",
}
DEFAULT_LINE_TYPE = "doubles"
DEFAULT_TOTAL_LINES = 3
MAX_TOTAL_LINES = 10

LINEUP_SIDES = ["player1", "player2"]

NTRP_RATING_MIN = 1.0
NTRP_RATING_MAX = 7.0

EVENT_TYPES = [
    {"value": "practice", "label": "Practice"},
    {"value": "warmup", "label": "Warmup"},
    {"value": "social", "label": "Social"},
    {"value": "other", "label": "Other"},
]
EVENT_TYPE_DEFAULT_LABEL = "Event"

# Personal activities shown on a member's own calendar
ACTIVITY_TYPES = [
    {"value": "practice", "label": "Practice"},
    {"value": "lesson", "label": "Lesson"},
    {"value": "clinic", "label": "Clinic"},
    {"value": "social", "label": "Social"},
    {"value": "other", "label": "Other"},
]
ACTIVITY_TYPE_DEFAULT_LABEL = "Activity"

# Availability grid window
TIME_SLOT_START_HOUR = 6
TIME_SLOT_END_HOUR = 22
TIME_SLOT_STEP_MINUTES = 30

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEKDAY_NAMES_SHORT = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Calendar views
MONTH_RANGE_BUFFER_DAYS = 7
CALENDAR_WEEKS_DEFAULT = 1
CALENDAR_WEEKS_MAX = 4

TEAM_NAME_MAX_LENGTH = 50
PLAYER_NAME_MAX_LENGTH = 60
