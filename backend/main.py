import logging
import secrets
from datetime import date
from typing import Literal, Optional
from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg2.extras import Json
from config import CORS_ORIGINS, PORT, HOST, DEBUG, LOG_LEVEL
from database import get_db, init_db
from models import (
    ActivityCreate, ActivityResponse, AvailabilityCreate, AvailabilityMark, AvailabilitySummary,
    CalendarResponse, CourtSlot, EventCreate, EventResponse, ExistingLineupRow,
    InvitationAccept, InvitationCreate, InvitationResponse,
    LineConfiguration, LineupAssignRequest, LineupEvaluateRequest, LineupPlayer, LineupSaveResponse,
    LineupState, LineupUnassignRequest, LineupView, MatchCreate, MatchResponse, PlannedCourt,
    RosterMember, RosterMemberCreate, TeamCreate, TeamLineupConfigUpdate, TeamResponse,
    WeeklyAvailability, WeeklyPaintResponse, WeeklySlotPaint, WeeklySlotToggle,
)
from constants import (
    ACTIVITY_TYPES, AVAILABILITY_STATUSES, CALENDAR_WEEKS_DEFAULT, CALENDAR_WEEKS_MAX, EVENT_TYPES,
    LINE_TYPES, STATUS_LABELS, TIME_SLOT_START_HOUR, TIME_SLOT_END_HOUR, TIME_SLOT_STEP_MINUTES,
    WEEKDAY_NAMES,
)
import availability
import calendar_utils
import lineup
import notifications

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Tennis Lineup API",
    version="1.0.0",
    docs_url="/api/docs" if DEBUG else None,
    redoc_url="/api/redoc" if DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": True, "status_code": exc.status_code, "message": exc.detail, "path": str(request.url.path)}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": True, "status_code": 500, "message": "Internal server error", "path": str(request.url.path)}
    )


@app.on_event("startup")
def startup():
    init_db()


def generate_id() -> str:
    return secrets.token_urlsafe(8)


def parse_date(value: Optional[str], default: date) -> date:
    if not value:
        return default
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date '{value}', expected YYYY-MM-DD")


def fetch_team(cursor, team_id: str) -> dict:
    cursor.execute("SELECT * FROM teams WHERE id = %s", (team_id,))
    row = cursor.fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Team not found")
    return dict(row)


def fetch_match(cursor, team_id: str, match_id: str) -> dict:
    cursor.execute("SELECT * FROM matches WHERE id = %s", (match_id,))
    row = cursor.fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Match not found")
    if row["team_id"] != team_id:
        raise HTTPException(status_code=403, detail="Match belongs to another team")
    return row_to_dict(row)


def fetch_member(cursor, team_id: str, member_id: str) -> dict:
    cursor.execute("SELECT * FROM roster_members WHERE id = %s AND team_id = %s", (member_id, team_id))
    row = cursor.fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Roster member not found")
    return dict(row)


def line_config_for(team: dict) -> LineConfiguration:
    return LineConfiguration.from_team_settings(team.get("total_lines"), team.get("line_match_types"))


def team_response(team: dict) -> TeamResponse:
    config = line_config_for(team)
    return TeamResponse(
        id=team["id"],
        name=team["name"],
        rating_limit=team.get("rating_limit"),
        total_lines=config.total_lines,
        line_match_types=list(config.line_types),
    )


def row_to_dict(row) -> dict:
    data = dict(row)
    data["date"] = str(data["date"])
    return data


def roster_member(row) -> RosterMember:
    return RosterMember(
        id=row["id"],
        full_name=row["full_name"],
        ntrp_rating=row.get("ntrp_rating"),
        is_active=bool(row.get("is_active", True)),
        email=row.get("email"),
    )


def lineup_view(state: LineupState, rating_limit: Optional[float]) -> LineupView:
    return LineupView(
        state=state,
        rating_limit=rating_limit,
        buckets=lineup.classify(state),
        courts=lineup.summarize_courts(state, rating_limit),
    )


# ============ TEAMS ============

@app.post("/api/teams", response_model=TeamResponse)
def create_team(team: TeamCreate):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO teams (id, name, rating_limit, total_lines, line_match_types)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), team.name, team.rating_limit, team.total_lines, Json(team.line_match_types)))
        return team_response(dict(cursor.fetchone()))


@app.get("/api/teams/{team_id}", response_model=TeamResponse)
def get_team(team_id: str):
    with get_db() as conn:
        return team_response(fetch_team(conn.cursor(), team_id))


@app.put("/api/teams/{team_id}/lineup-config", response_model=TeamResponse)
def update_lineup_config(team_id: str, update: TeamLineupConfigUpdate):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            UPDATE teams SET rating_limit = %s, total_lines = %s, line_match_types = %s
            WHERE id = %s
            RETURNING *
        """, (update.rating_limit, update.total_lines, Json(update.line_match_types), team_id))
        row = cursor.fetchone()
        if not row:
            raise HTTPException(status_code=404, detail="Team not found")
        return team_response(dict(row))


# ============ ROSTER ============

@app.post("/api/teams/{team_id}/roster", response_model=RosterMember)
def add_roster_member(team_id: str, member: RosterMemberCreate):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_team(cursor, team_id)
        cursor.execute("""
            INSERT INTO roster_members (id, team_id, full_name, email, ntrp_rating)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), team_id, member.full_name, member.email, member.ntrp_rating))
        return roster_member(cursor.fetchone())


@app.get("/api/teams/{team_id}/roster", response_model=list[RosterMember])
def get_roster(team_id: str, include_inactive: bool = False):
    with get_db() as conn:
        cursor = conn.cursor()
        if include_inactive:
            cursor.execute("SELECT * FROM roster_members WHERE team_id = %s ORDER BY full_name", (team_id,))
        else:
            cursor.execute("""
                SELECT * FROM roster_members
                WHERE team_id = %s AND is_active = TRUE
                ORDER BY full_name
            """, (team_id,))
        return [roster_member(row) for row in cursor.fetchall()]


@app.delete("/api/teams/{team_id}/roster/{member_id}")
def deactivate_roster_member(team_id: str, member_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE roster_members SET is_active = FALSE WHERE id = %s AND team_id = %s",
            (member_id, team_id)
        )
        if cursor.rowcount == 0:
            raise HTTPException(status_code=404, detail="Roster member not found")
        logger.info("Deactivated roster member %s on team %s", member_id, team_id)
        return {"message": "Roster member deactivated"}


# ============ INVITATIONS ============

@app.post("/api/teams/{team_id}/invitations", response_model=InvitationResponse)
def invite_player(team_id: str, invite: InvitationCreate, background_tasks: BackgroundTasks):
    with get_db() as conn:
        cursor = conn.cursor()
        team = fetch_team(cursor, team_id)

        cursor.execute("""
            SELECT id FROM roster_members
            WHERE team_id = %s AND is_active = TRUE AND LOWER(email) = %s
        """, (team_id, invite.email))
        if cursor.fetchone():
            raise HTTPException(status_code=409, detail="This email is already on the team roster")

        cursor.execute("""
            SELECT id FROM team_invitations
            WHERE team_id = %s AND invitee_email = %s AND status = 'pending'
        """, (team_id, invite.email))
        if cursor.fetchone():
            raise HTTPException(status_code=409, detail="An invitation is already pending for this email")

        cursor.execute("""
            INSERT INTO team_invitations (id, team_id, invitee_email, invitee_name, message)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), team_id, invite.email, invite.name, invite.message))
        invitation = dict(cursor.fetchone())

    logger.info("Invited %s to team %s", invite.email, team_id)
    background_tasks.add_task(notifications.send_team_invitation, invitation, team["name"])
    return InvitationResponse(**invitation)


@app.get("/api/teams/{team_id}/invitations", response_model=list[InvitationResponse])
def list_invitations(team_id: str, status: Optional[Literal["pending", "accepted", "declined"]] = None):
    with get_db() as conn:
        cursor = conn.cursor()
        if status:
            cursor.execute("""
                SELECT * FROM team_invitations WHERE team_id = %s AND status = %s ORDER BY created_at
            """, (team_id, status))
        else:
            cursor.execute("SELECT * FROM team_invitations WHERE team_id = %s ORDER BY created_at", (team_id,))
        return [InvitationResponse(**row) for row in cursor.fetchall()]


def fetch_pending_invitation(cursor, invitation_id: str) -> dict:
    cursor.execute("SELECT * FROM team_invitations WHERE id = %s", (invitation_id,))
    row = cursor.fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Invitation not found")
    if row["status"] != "pending":
        raise HTTPException(status_code=409, detail=f"Invitation was already {row['status']}")
    return dict(row)


@app.post("/api/invitations/{invitation_id}/accept", response_model=RosterMember)
def accept_invitation(invitation_id: str, accept: InvitationAccept):
    """Accepting adds the invitee to the roster under the invited address."""
    with get_db() as conn:
        cursor = conn.cursor()
        invitation = fetch_pending_invitation(cursor, invitation_id)
        full_name = accept.full_name or invitation.get("invitee_name") or invitation["invitee_email"].split("@")[0]

        cursor.execute("""
            INSERT INTO roster_members (id, team_id, full_name, email, ntrp_rating)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), invitation["team_id"], full_name.strip(), invitation["invitee_email"], accept.ntrp_rating))
        member = roster_member(cursor.fetchone())

        cursor.execute("""
            UPDATE team_invitations
            SET status = 'accepted', roster_member_id = %s, responded_at = CURRENT_TIMESTAMP
            WHERE id = %s
        """, (member.id, invitation_id))
        logger.info("Invitation %s accepted, roster member %s", invitation_id, member.id)
        return member


@app.post("/api/invitations/{invitation_id}/decline")
def decline_invitation(invitation_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_pending_invitation(cursor, invitation_id)
        cursor.execute("""
            UPDATE team_invitations SET status = 'declined', responded_at = CURRENT_TIMESTAMP
            WHERE id = %s
        """, (invitation_id,))
        return {"message": "Invitation declined"}


# ============ SCHEDULE ============

@app.post("/api/teams/{team_id}/matches", response_model=MatchResponse)
def create_match(team_id: str, match: MatchCreate):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_team(cursor, team_id)
        cursor.execute("""
            INSERT INTO matches (id, team_id, date, time, opponent_name, venue, is_home)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), team_id, match.date, match.time, match.opponent_name, match.venue, match.is_home))
        return MatchResponse(**row_to_dict(cursor.fetchone()))


@app.get("/api/teams/{team_id}/matches", response_model=list[MatchResponse])
def list_matches(team_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM matches WHERE team_id = %s ORDER BY date, time", (team_id,))
        return [MatchResponse(**row_to_dict(row)) for row in cursor.fetchall()]


@app.post("/api/teams/{team_id}/events", response_model=EventResponse)
def create_event(team_id: str, event: EventCreate):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_team(cursor, team_id)
        cursor.execute("""
            INSERT INTO events (id, team_id, event_name, event_type, date, time, location)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), team_id, event.event_name, event.event_type, event.date, event.time, event.location))
        return EventResponse(**row_to_dict(cursor.fetchone()))


@app.get("/api/teams/{team_id}/events", response_model=list[EventResponse])
def list_events(team_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM events WHERE team_id = %s ORDER BY date, time", (team_id,))
        return [EventResponse(**row_to_dict(row)) for row in cursor.fetchall()]


@app.post("/api/teams/{team_id}/roster/{member_id}/activities", response_model=ActivityResponse)
def create_activity(team_id: str, member_id: str, activity: ActivityCreate):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_member(cursor, team_id, member_id)
        cursor.execute("""
            INSERT INTO personal_activities (id, roster_member_id, title, activity_type, date, time, duration_minutes, location)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
        """, (generate_id(), member_id, activity.title, activity.activity_type, activity.date, activity.time,
              activity.duration_minutes, activity.location))
        return ActivityResponse(**row_to_dict(cursor.fetchone()))


@app.get("/api/teams/{team_id}/roster/{member_id}/activities", response_model=list[ActivityResponse])
def list_activities(team_id: str, member_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_member(cursor, team_id, member_id)
        cursor.execute("""
            SELECT * FROM personal_activities WHERE roster_member_id = %s ORDER BY date, time
        """, (member_id,))
        return [ActivityResponse(**row_to_dict(row)) for row in cursor.fetchall()]


# ============ AVAILABILITY ============

def upsert_availability(cursor, item_table: str, item_column: str, item_id: str, mark: AvailabilityCreate):
    cursor.execute(f"SELECT team_id FROM {item_table} WHERE id = %s", (item_id,))
    item = cursor.fetchone()
    if not item:
        raise HTTPException(status_code=404, detail=f"{item_table[:-1].capitalize()} not found")

    cursor.execute("SELECT team_id FROM roster_members WHERE id = %s", (mark.roster_member_id,))
    member = cursor.fetchone()
    if not member:
        raise HTTPException(status_code=404, detail="Roster member not found")
    if member["team_id"] != item["team_id"]:
        raise HTTPException(status_code=403, detail="Roster member is not on this team")

    cursor.execute(f"""
        INSERT INTO availability (roster_member_id, {item_column}, status, comment)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (roster_member_id, {item_column})
        DO UPDATE SET status = EXCLUDED.status, comment = EXCLUDED.comment, updated_at = CURRENT_TIMESTAMP
    """, (mark.roster_member_id, item_id, mark.status, mark.comment))


@app.put("/api/matches/{match_id}/availability")
def set_match_availability(match_id: str, mark: AvailabilityCreate):
    with get_db() as conn:
        upsert_availability(conn.cursor(), "matches", "match_id", match_id, mark)
        return {"message": "Availability saved", "status": mark.status}


@app.put("/api/events/{event_id}/availability")
def set_event_availability(event_id: str, mark: AvailabilityCreate):
    with get_db() as conn:
        upsert_availability(conn.cursor(), "events", "event_id", event_id, mark)
        return {"message": "Availability saved", "status": mark.status}


@app.get("/api/teams/{team_id}/matches/{match_id}/availability/summary", response_model=AvailabilitySummary)
def get_availability_summary(team_id: str, match_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_match(cursor, team_id, match_id)
        cursor.execute("SELECT id FROM roster_members WHERE team_id = %s AND is_active = TRUE", (team_id,))
        roster_ids = [row["id"] for row in cursor.fetchall()]
        marks = fetch_match_marks(cursor, match_id)
        return availability.summarize(availability.latest_statuses(marks), roster_ids)


def fetch_match_marks(cursor, match_id: str) -> list[AvailabilityMark]:
    cursor.execute("SELECT roster_member_id, status FROM availability WHERE match_id = %s ORDER BY updated_at", (match_id,))
    return [
        AvailabilityMark(roster_member_id=row["roster_member_id"], item_id=match_id, status=row["status"])
        for row in cursor.fetchall()
    ]


# ============ DEFAULT WEEKLY AVAILABILITY ============

def check_weekly_slots(day: str, times: list[str]):
    if day not in WEEKDAY_NAMES:
        raise HTTPException(status_code=400, detail=f"Unknown day '{day}'")
    valid = calendar_utils.generate_time_slots(TIME_SLOT_START_HOUR, TIME_SLOT_END_HOUR, TIME_SLOT_STEP_MINUTES)
    unknown = [time for time in times if time not in valid]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Not a bookable time slot: {', '.join(unknown)}")


def stored_weekly(member: dict) -> dict[str, list[str]]:
    return availability.weekly_template(member.get("availability_defaults"), WEEKDAY_NAMES)


def save_weekly(cursor, member_id: str, weekly: dict[str, list[str]]) -> dict[str, list[str]]:
    weekly = availability.weekly_template(weekly, WEEKDAY_NAMES)
    cursor.execute("UPDATE roster_members SET availability_defaults = %s WHERE id = %s", (Json(weekly), member_id))
    return weekly


@app.get("/api/teams/{team_id}/roster/{member_id}/availability-defaults", response_model=WeeklyAvailability)
def get_weekly_availability(team_id: str, member_id: str):
    with get_db() as conn:
        member = fetch_member(conn.cursor(), team_id, member_id)
        return WeeklyAvailability(slots=stored_weekly(member))


@app.put("/api/teams/{team_id}/roster/{member_id}/availability-defaults", response_model=WeeklyAvailability)
def replace_weekly_availability(team_id: str, member_id: str, weekly: WeeklyAvailability):
    for day, times in weekly.slots.items():
        check_weekly_slots(day, times)
    with get_db() as conn:
        cursor = conn.cursor()
        fetch_member(cursor, team_id, member_id)
        slots = {day: sorted(set(times)) for day, times in weekly.slots.items()}
        return WeeklyAvailability(slots=save_weekly(cursor, member_id, slots))


@app.post("/api/teams/{team_id}/roster/{member_id}/availability-defaults/toggle", response_model=WeeklyAvailability)
def toggle_weekly_availability(team_id: str, member_id: str, toggle: WeeklySlotToggle):
    check_weekly_slots(toggle.day, [toggle.time])
    with get_db() as conn:
        cursor = conn.cursor()
        member = fetch_member(cursor, team_id, member_id)
        weekly = availability.toggle_weekly_slot(stored_weekly(member), toggle.day, toggle.time)
        return WeeklyAvailability(slots=save_weekly(cursor, member_id, weekly))


@app.post("/api/teams/{team_id}/roster/{member_id}/availability-defaults/paint", response_model=WeeklyPaintResponse)
def paint_weekly_availability(team_id: str, member_id: str, drag: WeeklySlotPaint):
    check_weekly_slots(drag.day, drag.times)
    with get_db() as conn:
        cursor = conn.cursor()
        member = fetch_member(cursor, team_id, member_id)
        weekly, mode = availability.paint_drag(stored_weekly(member), drag.day, drag.times, drag.mode)
        return WeeklyPaintResponse(slots=save_weekly(cursor, member_id, weekly), mode=mode)


# ============ LINEUP ============

def load_lineup_state(cursor, team: dict, match_id: str) -> LineupState:
    cursor.execute("SELECT * FROM roster_members WHERE team_id = %s AND is_active = TRUE ORDER BY full_name", (team["id"],))
    roster = [roster_member(row) for row in cursor.fetchall()]
    marks = fetch_match_marks(cursor, match_id)
    cursor.execute("SELECT * FROM lineups WHERE match_id = %s ORDER BY court_slot", (match_id,))
    rows = [
        ExistingLineupRow(
            court_number=row["court_slot"],
            player1_id=row["player1_id"],
            player2_id=row["player2_id"],
            lineup_id=row["id"],
        )
        for row in cursor.fetchall()
    ]
    return lineup.build_lineup(roster, marks, line_config_for(team), rows)


def stored_slot(court: PlannedCourt, roster_by_id: dict) -> CourtSlot:
    """The court as the roster has it: names, ratings and addresses never come from the request."""
    players = {}
    for side, player_id in (("player1", court.player1_id), ("player2", court.player2_id)):
        if player_id:
            players[side] = LineupPlayer(**roster_member(roster_by_id[player_id]).model_dump())
    return CourtSlot(court_number=court.court_number, lineup_id=court.lineup_id, **players)


def write_lineup(cursor, team: dict, match_id: str, state: LineupState, publish: bool):
    """
    Upsert the plan for a match. Only player ids are taken from ``state``.

    Returns the written courts as roster-backed slots.
    """
    config = line_config_for(team)
    if len(state.slots) != config.total_lines:
        raise HTTPException(
            status_code=400,
            detail=f"Lineup has {len(state.slots)} courts but the team plays {config.total_lines} lines"
        )

    plan = lineup.to_persistable_plan(state, config)

    cursor.execute("SELECT * FROM roster_members WHERE team_id = %s AND is_active = TRUE", (team["id"],))
    roster_by_id = {row["id"]: row for row in cursor.fetchall()}
    for court in plan:
        for player_id in (court.player1_id, court.player2_id):
            if player_id and player_id not in roster_by_id:
                raise HTTPException(status_code=400, detail=f"Player {player_id} is not on the active roster")

    cursor.execute("SELECT id, court_slot FROM lineups WHERE match_id = %s", (match_id,))
    stored_ids = {row["court_slot"]: row["id"] for row in cursor.fetchall()}

    written = []
    for index, court in enumerate(plan):
        lineup_id = stored_ids.get(court.court_number)
        has_players = bool(court.player1_id or court.player2_id)
        if publish and not has_players:
            continue
        if not publish and not (lineup_id or has_players):
            continue

        slot = stored_slot(court.model_copy(update={"lineup_id": lineup_id or generate_id()}), roster_by_id)
        rating = lineup.combined_rating(slot, config.is_singles(index))
        cursor.execute("""
            INSERT INTO lineups (id, match_id, court_slot, player1_id, player2_id, combined_rating, is_published)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (match_id, court_slot)
            DO UPDATE SET player1_id = EXCLUDED.player1_id,
                          player2_id = EXCLUDED.player2_id,
                          combined_rating = EXCLUDED.combined_rating,
                          is_published = lineups.is_published OR EXCLUDED.is_published,
                          updated_at = CURRENT_TIMESTAMP
        """, (slot.lineup_id, match_id, slot.court_number, court.player1_id, court.player2_id, rating, publish))
        written.append(slot)

    logger.info("%s lineup for match %s (%d courts)", "Published" if publish else "Saved", match_id, len(written))
    return written


def planned_courts(slots: list[CourtSlot]) -> list[PlannedCourt]:
    return [
        PlannedCourt(
            court_number=slot.court_number,
            player1_id=slot.player1.id if slot.player1 else None,
            player2_id=slot.player2.id if slot.player2 else None,
            lineup_id=slot.lineup_id,
        )
        for slot in slots
    ]


def lineup_recipients(slots: list[CourtSlot]) -> list[dict]:
    recipients = []
    for slot in slots:
        players = [p for p in (slot.player1, slot.player2) if p is not None]
        for player in players:
            partner = next((p for p in players if p.id != player.id), None)
            recipients.append({
                "id": player.id,
                "full_name": player.full_name,
                "email": player.email,
                "court_number": slot.court_number,
                "partner_name": partner.full_name if partner else None,
            })
    return recipients


@app.get("/api/teams/{team_id}/matches/{match_id}/lineup", response_model=LineupView)
def get_lineup(team_id: str, match_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        team = fetch_team(cursor, team_id)
        fetch_match(cursor, team_id, match_id)
        state = load_lineup_state(cursor, team, match_id)
        return lineup_view(state, team.get("rating_limit"))


@app.put("/api/teams/{team_id}/matches/{match_id}/lineup", response_model=LineupSaveResponse)
def save_lineup(team_id: str, match_id: str, state: LineupState):
    with get_db() as conn:
        cursor = conn.cursor()
        team = fetch_team(cursor, team_id)
        fetch_match(cursor, team_id, match_id)
        written = write_lineup(cursor, team, match_id, state, publish=False)
        return LineupSaveResponse(message="Lineup saved", plan=planned_courts(written))


@app.post("/api/teams/{team_id}/matches/{match_id}/lineup/publish", response_model=LineupSaveResponse)
def publish_lineup(team_id: str, match_id: str, state: LineupState, background_tasks: BackgroundTasks):
    with get_db() as conn:
        cursor = conn.cursor()
        team = fetch_team(cursor, team_id)
        match = fetch_match(cursor, team_id, match_id)
        written = write_lineup(cursor, team, match_id, state, publish=True)

    background_tasks.add_task(notifications.send_lineup_published, lineup_recipients(written), match, team["name"])
    return LineupSaveResponse(message="Lineup published", plan=planned_courts(written), is_published=True)


@app.post("/api/lineup/evaluate", response_model=LineupView)
def evaluate_lineup(request: LineupEvaluateRequest):
    return lineup_view(request.state, request.rating_limit)


@app.post("/api/lineup/assign", response_model=LineupView)
def assign_player(request: LineupAssignRequest):
    player = lineup.find_player(request.state, request.player_id)
    if player is None:
        raise HTTPException(status_code=404, detail="Player is not part of this lineup")
    try:
        state = lineup.assign(request.state, player, request.court_index, request.side)
    except lineup.LineupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return lineup_view(state, request.rating_limit)


@app.post("/api/lineup/unassign", response_model=LineupView)
def unassign_player(request: LineupUnassignRequest):
    try:
        state = lineup.unassign(request.state, request.court_index, request.side)
    except lineup.LineupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return lineup_view(state, request.rating_limit)


# ============ CALENDAR ============

def calendar_window(view: str, reference: date, weeks: int, today: date):
    try:
        if view == "month":
            start, end = calendar_utils.month_date_range(reference)
            days = calendar_utils.month_grid(reference, today)
        else:
            start, end = calendar_utils.week_date_range(reference, weeks)
            days = calendar_utils.week_grid(reference, weeks, today)
    except calendar_utils.CalendarError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return start, end, days


@app.get("/api/calendar/grid", response_model=CalendarResponse)
def get_calendar_grid(
    view: Literal["month", "week"] = "month",
    reference: Optional[str] = Query(None, alias="date"),
    weeks: int = Query(CALENDAR_WEEKS_DEFAULT, ge=1, le=CALENDAR_WEEKS_MAX),
    today: Optional[str] = None,
):
    today_date = parse_date(today, date.today())
    start, end, days = calendar_window(view, parse_date(reference, today_date), weeks, today_date)
    return CalendarResponse(start=start, end=end, days=days)


@app.get("/api/calendar", response_model=CalendarResponse)
def get_calendar(
    team_ids: list[str] = Query(...),
    view: Literal["month", "week"] = "month",
    reference: Optional[str] = Query(None, alias="date"),
    weeks: int = Query(CALENDAR_WEEKS_DEFAULT, ge=1, le=CALENDAR_WEEKS_MAX),
    member_id: Optional[str] = None,
    include_matches: bool = True,
    include_events: bool = True,
    include_activities: bool = True,
    today: Optional[str] = None,
):
    today_date = parse_date(today, date.today())
    start, end, days = calendar_window(view, parse_date(reference, today_date), weeks, today_date)

    items = []
    with get_db() as conn:
        cursor = conn.cursor()
        if include_matches:
            cursor.execute("""
                SELECT m.*, t.name AS team_name
                FROM matches m
                JOIN teams t ON m.team_id = t.id
                WHERE m.team_id = ANY(%s) AND m.date BETWEEN %s AND %s
                ORDER BY m.date, m.time
            """, (team_ids, start, end))
            items.extend(calendar_utils.item_from_match(dict(row)) for row in cursor.fetchall())

        if include_events:
            cursor.execute("""
                SELECT e.*, t.name AS team_name
                FROM events e
                JOIN teams t ON e.team_id = t.id
                WHERE e.team_id = ANY(%s) AND e.date BETWEEN %s AND %s
                ORDER BY e.date, e.time
            """, (team_ids, start, end))
            items.extend(calendar_utils.item_from_event(dict(row)) for row in cursor.fetchall())

        if member_id:
            cursor.execute("""
                SELECT COALESCE(match_id, event_id) AS item_id, status
                FROM availability
                WHERE roster_member_id = %s
                ORDER BY updated_at
            """, (member_id,))
            marks = [
                AvailabilityMark(roster_member_id=member_id, item_id=row["item_id"], status=row["status"])
                for row in cursor.fetchall()
            ]
            items = calendar_utils.apply_availability(items, marks)

        if member_id and include_activities:
            cursor.execute("""
                SELECT * FROM personal_activities
                WHERE roster_member_id = %s AND date BETWEEN %s AND %s
                ORDER BY date, time
            """, (member_id, start, end))
            items.extend(calendar_utils.item_from_activity(dict(row)) for row in cursor.fetchall())

    grouped = calendar_utils.group_by_date(calendar_utils.sort_items(items))
    return CalendarResponse(start=start, end=end, days=days, items=grouped)


# ============ CONFIGURATION ============

@app.get("/api/config")
def get_config():
    time_slots = calendar_utils.generate_time_slots(TIME_SLOT_START_HOUR, TIME_SLOT_END_HOUR, TIME_SLOT_STEP_MINUTES)
    return {
        "availability_statuses": [
            {"value": status, "label": STATUS_LABELS[status]} for status in AVAILABILITY_STATUSES
        ],
        "line_types": [{"value": t, "label": lineup.line_type_label(t)} for t in LINE_TYPES],
        "event_types": EVENT_TYPES,
        "activity_types": ACTIVITY_TYPES,
        "time_slots": [
            {"value": slot, "label": calendar_utils.format_time_display(slot)} for slot in time_slots
        ],
        "weekdays": calendar_utils.weekday_names(short=False),
        "calendar_weeks": {"default": CALENDAR_WEEKS_DEFAULT, "max": CALENDAR_WEEKS_MAX},
    }


# ============ HEALTH CHECK ============

@app.get("/api/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT, reload=DEBUG)
