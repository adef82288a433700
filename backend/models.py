from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional
import datetime
from constants import (
    DEFAULT_LINE_TYPE, DEFAULT_TOTAL_LINES, LINE_TYPES, MAX_TOTAL_LINES,
    NTRP_RATING_MIN, NTRP_RATING_MAX, PLAYER_NAME_MAX_LENGTH, TEAM_NAME_MAX_LENGTH,
)

AvailabilityStatus = Literal["available", "unavailable", "maybe", "late", "last_resort"]
LineType = Literal["singles", "doubles", "mixed"]
LineupSide = Literal["player1", "player2"]
EventType = Literal["practice", "warmup", "social", "other"]
CalendarItemType = Literal["match", "event", "activity"]
ActivityType = Literal["practice", "lesson", "clinic", "social", "other"]
InvitationStatus = Literal["pending", "accepted", "declined"]
PaintMode = Literal["select", "deselect"]


def check_half_point(rating: Optional[float]) -> Optional[float]:
    if rating is not None and (rating * 2) != int(rating * 2):
        raise ValueError("NTRP rating must be in half-point increments")
    return rating


# ============ ROSTER & AVAILABILITY ============

class RosterMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str
    ntrp_rating: Optional[float] = None
    is_active: bool = True
    email: Optional[str] = None


class AvailabilityMark(BaseModel):
    model_config = ConfigDict(frozen=True)

    roster_member_id: str
    item_id: str
    status: AvailabilityStatus


class LineupPlayer(RosterMember):
    """A roster member together with their latest mark for the match being lined up."""
    availability: Optional[AvailabilityStatus] = None


class AvailabilityBuckets(BaseModel):
    available: list[LineupPlayer] = Field(default_factory=list)
    unavailable: list[LineupPlayer] = Field(default_factory=list)
    not_set: list[LineupPlayer] = Field(default_factory=list)
    last_resort: list[LineupPlayer] = Field(default_factory=list)


class AvailabilitySummary(BaseModel):
    available: int = 0
    unavailable: int = 0
    maybe: int = 0
    late: int = 0
    last_resort: int = 0
    not_set: int = 0
    total: int = 0


# ============ LINEUP ENGINE STATE ============

class LineConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_lines: int = Field(default=DEFAULT_TOTAL_LINES, ge=1)
    line_types: tuple[LineType, ...] = ()

    @classmethod
    def from_team_settings(cls, total_lines: Optional[int], line_match_types: Optional[list[str]]):
        """Build a configuration from a team row, padding or truncating types to the line count."""
        lines = total_lines or DEFAULT_TOTAL_LINES
        stored = line_match_types if isinstance(line_match_types, list) else []
        types = [t if t in LINE_TYPES else DEFAULT_LINE_TYPE for t in stored[:lines]]
        types += [DEFAULT_LINE_TYPE] * (lines - len(types))
        return cls(total_lines=lines, line_types=tuple(types))

    def line_type(self, index: int) -> str:
        if index < len(self.line_types):
            return self.line_types[index]
        return DEFAULT_LINE_TYPE

    def is_singles(self, index: int) -> bool:
        return self.line_type(index) == "singles"


class CourtSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    court_number: int = Field(..., ge=1)
    player1: Optional[LineupPlayer] = None
    player2: Optional[LineupPlayer] = None
    lineup_id: Optional[str] = None


class LineupState(BaseModel):
    model_config = ConfigDict(frozen=True)

    line_config: LineConfiguration
    slots: tuple[CourtSlot, ...]
    unassigned: tuple[LineupPlayer, ...] = ()


class ExistingLineupRow(BaseModel):
    court_number: int
    player1_id: Optional[str] = None
    player2_id: Optional[str] = None
    lineup_id: Optional[str] = None


class PlannedCourt(BaseModel):
    court_number: int
    player1_id: Optional[str] = None
    player2_id: Optional[str] = None
    lineup_id: Optional[str] = None


class CourtSummary(BaseModel):
    court_number: int
    line_type: LineType
    label: str
    combined_rating: float
    is_complete: bool
    is_over_limit: bool


# ============ CALENDAR ============

class CalendarDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime.date
    date_string: str
    day_of_month: int
    is_current_month: bool
    is_today: bool
    is_weekend: bool


class CalendarItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: CalendarItemType
    date: str
    time: str
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    name: str
    availability_status: Optional[AvailabilityStatus] = None
    event_type: Optional[str] = None
    activity_type: Optional[str] = None
    duration_minutes: Optional[int] = None


class CalendarResponse(BaseModel):
    start: str
    end: str
    days: list[CalendarDay]
    items: dict[str, list[CalendarItem]] = Field(default_factory=dict)


# ============ API: TEAMS ============

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=TEAM_NAME_MAX_LENGTH)
    rating_limit: Optional[float] = Field(default=None, ge=0)
    total_lines: int = Field(default=DEFAULT_TOTAL_LINES, ge=1, le=MAX_TOTAL_LINES)
    line_match_types: list[LineType] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def name_cleaned(cls, v):
        if not v.strip():
            raise ValueError("Team name cannot be blank")
        return v.strip()


class TeamLineupConfigUpdate(BaseModel):
    rating_limit: Optional[float] = Field(default=None, ge=0)
    total_lines: int = Field(default=DEFAULT_TOTAL_LINES, ge=1, le=MAX_TOTAL_LINES)
    line_match_types: list[LineType] = Field(default_factory=list)


class TeamResponse(BaseModel):
    id: str
    name: str
    rating_limit: Optional[float] = None
    total_lines: int
    line_match_types: list[LineType]


class RosterMemberCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=PLAYER_NAME_MAX_LENGTH)
    email: Optional[str] = Field(default=None, max_length=254)
    ntrp_rating: Optional[float] = Field(default=None, ge=NTRP_RATING_MIN, le=NTRP_RATING_MAX)

    @field_validator('full_name')
    @classmethod
    def name_cleaned(cls, v):
        return v.strip()

    @field_validator('ntrp_rating')
    @classmethod
    def half_point_rating(cls, v):
        return check_half_point(v)


# ============ API: SCHEDULE ============

class MatchCreate(BaseModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    opponent_name: str = Field(..., min_length=1, max_length=TEAM_NAME_MAX_LENGTH)
    venue: Optional[str] = Field(default=None, max_length=100)
    is_home: bool = True


class MatchResponse(BaseModel):
    id: str
    team_id: str
    date: str
    time: str
    opponent_name: str
    venue: Optional[str] = None
    is_home: bool = True


class EventCreate(BaseModel):
    event_name: str = Field(..., min_length=1, max_length=100)
    event_type: Optional[EventType] = None
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    location: Optional[str] = Field(default=None, max_length=100)


class EventResponse(BaseModel):
    id: str
    team_id: str
    event_name: str
    event_type: Optional[EventType] = None
    date: str
    time: str
    location: Optional[str] = None


class AvailabilityCreate(BaseModel):
    roster_member_id: str
    status: AvailabilityStatus
    comment: Optional[str] = Field(default=None, max_length=200)


class WeeklyAvailability(BaseModel):
    """A member's usual free time: weekday name -> sorted "HH:MM" slots."""
    slots: dict[str, list[str]] = Field(default_factory=dict)


class WeeklyPaintResponse(WeeklyAvailability):
    mode: PaintMode


class WeeklySlotToggle(BaseModel):
    day: str
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")


class WeeklySlotPaint(BaseModel):
    """One drag across the grid. Without a mode, the first slot decides it."""
    day: str
    times: list[str] = Field(..., min_length=1)
    mode: Optional[PaintMode] = None


# ============ API: ACTIVITIES ============

class ActivityCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    activity_type: Optional[ActivityType] = None
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    location: Optional[str] = Field(default=None, max_length=100)

    @field_validator('title')
    @classmethod
    def title_cleaned(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v.strip()


class ActivityResponse(BaseModel):
    id: str
    roster_member_id: str
    title: str
    activity_type: Optional[ActivityType] = None
    date: str
    time: str
    duration_minutes: Optional[int] = None
    location: Optional[str] = None


# ============ API: INVITATIONS ============

class InvitationCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    name: Optional[str] = Field(default=None, max_length=PLAYER_NAME_MAX_LENGTH)
    message: Optional[str] = Field(default=None, max_length=500)

    @field_validator('email')
    @classmethod
    def email_normalized(cls, v):
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return v


class InvitationAccept(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=PLAYER_NAME_MAX_LENGTH)
    ntrp_rating: Optional[float] = Field(default=None, ge=NTRP_RATING_MIN, le=NTRP_RATING_MAX)

    @field_validator('ntrp_rating')
    @classmethod
    def half_point_rating(cls, v):
        return check_half_point(v)


class InvitationResponse(BaseModel):
    id: str
    team_id: str
    invitee_email: str
    invitee_name: Optional[str] = None
    message: Optional[str] = None
    status: InvitationStatus
    roster_member_id: Optional[str] = None


# ============ API: LINEUP ============

class LineupView(BaseModel):
    state: LineupState
    rating_limit: Optional[float] = None
    buckets: AvailabilityBuckets
    courts: list[CourtSummary]


class LineupEvaluateRequest(BaseModel):
    state: LineupState
    rating_limit: Optional[float] = None


class LineupAssignRequest(LineupEvaluateRequest):
    player_id: str
    court_index: int
    side: LineupSide = "player1"


class LineupUnassignRequest(LineupEvaluateRequest):
    court_index: int
    side: LineupSide = "player1"


class LineupSaveResponse(BaseModel):
    message: str
    plan: list[PlannedCourt]
    is_published: bool = False
