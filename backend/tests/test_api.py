"""
API tests. Engine and calendar-grid routes run without a database; the
lineup and summary routes run against the scripted cursor from conftest.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

import lineup
import notifications
from main import app
from models import CourtSlot, LineConfiguration, LineupPlayer, LineupState
from conftest import make_member


@pytest.fixture
def client():
    # Not used as a context manager, so the startup hook never touches a database
    return TestClient(app)


@pytest.fixture
def state_json(roster):
    config = LineConfiguration.from_team_settings(2, ["singles", "doubles"])
    state = lineup.build_lineup(roster, [], config)
    return state.model_dump(mode="json")


# ============================================================================
# Configuration and calendar grid
# ============================================================================

def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_config_lists_time_slots_and_statuses(client):
    data = client.get("/api/config").json()

    assert data["time_slots"][0] == {"value": "06:00", "label": "6:00 AM"}
    assert data["time_slots"][-1]["value"] == "22:00"
    assert len(data["time_slots"]) == 33
    assert [s["value"] for s in data["availability_statuses"]] == [
        "available", "unavailable", "maybe", "late", "last_resort",
    ]
    assert data["calendar_weeks"]["max"] == 4


def test_calendar_grid_month(client):
    response = client.get("/api/calendar/grid", params={"view": "month", "date": "2026-02-10", "today": "2026-02-10"})
    data = response.json()

    assert response.status_code == 200
    assert len(data["days"]) == 28
    assert (data["start"], data["end"]) == ("2026-01-25", "2026-03-07")
    assert [d["date_string"] for d in data["days"] if d["is_today"]] == ["2026-02-10"]
    assert data["items"] == {}


def test_calendar_grid_weeks(client):
    response = client.get("/api/calendar/grid", params={"view": "week", "date": "2026-10-21", "weeks": 3})
    data = response.json()

    assert len(data["days"]) == 21
    assert data["start"] == "2026-10-18"
    assert data["end"] == "2026-11-07"


def test_calendar_grid_caps_weeks(client):
    response = client.get("/api/calendar/grid", params={"view": "week", "weeks": 5})
    assert response.status_code == 422


def test_calendar_grid_bad_date_uses_error_envelope(client):
    response = client.get("/api/calendar/grid", params={"date": "10/21/2026"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] is True
    assert body["path"] == "/api/calendar/grid"
    assert "Invalid date" in body["message"]


# ============================================================================
# Stateless lineup engine routes
# ============================================================================

def test_assign_route_returns_new_state_and_buckets(client, state_json):
    response = client.post("/api/lineup/assign", json={
        "state": state_json,
        "rating_limit": 4.0,
        "player_id": "C",
        "court_index": 0,
        "side": "player1",
    })
    data = response.json()

    assert response.status_code == 200
    assert data["state"]["slots"][0]["player1"]["id"] == "C"
    assert [p["id"] for p in data["buckets"]["not_set"]] == ["A", "B"]
    assert data["courts"][0]["is_over_limit"] is True
    assert data["courts"][0]["combined_rating"] == 4.5


def test_assign_route_rejects_second_player_on_singles(client, state_json):
    response = client.post("/api/lineup/assign", json={
        "state": state_json, "player_id": "A", "court_index": 0, "side": "player2",
    })
    assert response.status_code == 400
    assert "singles" in response.json()["message"]


def test_assign_route_unknown_player(client, state_json):
    response = client.post("/api/lineup/assign", json={
        "state": state_json, "player_id": "nobody", "court_index": 0,
    })
    assert response.status_code == 404


def test_unassign_route_round_trip(client, state_json):
    assigned = client.post("/api/lineup/assign", json={
        "state": state_json, "player_id": "B", "court_index": 1, "side": "player2",
    }).json()["state"]

    response = client.post("/api/lineup/unassign", json={
        "state": assigned, "court_index": 1, "side": "player2",
    })
    data = response.json()

    assert data["state"]["slots"][1]["player2"] is None
    assert [p["id"] for p in data["state"]["unassigned"]] == ["A", "C", "B"]


def test_unassign_route_out_of_range(client, state_json):
    response = client.post("/api/lineup/unassign", json={"state": state_json, "court_index": 5})
    assert response.status_code == 400


def test_evaluate_route_without_limit(client, state_json):
    data = client.post("/api/lineup/evaluate", json={"state": state_json}).json()

    assert data["rating_limit"] is None
    assert [c["label"] for c in data["courts"]] == ["Court 1 - Singles Match", "Court 2 - Doubles Match"]
    assert not any(c["is_over_limit"] for c in data["courts"])


# ============================================================================
# Database-backed routes
# ============================================================================

def test_get_lineup_restores_saved_courts(client, fake_db):
    response = client.get("/api/teams/team-1/matches/match-1/lineup")
    data = response.json()

    assert response.status_code == 200
    slots = data["state"]["slots"]
    assert len(slots) == 3
    # Court 1 is singles: the stored second player is dropped back into the pool
    assert slots[0]["player1"]["id"] == "A"
    assert slots[0]["player2"] is None
    assert slots[0]["lineup_id"] == "lineup-1"
    assert [p["id"] for p in data["buckets"]["available"]] == ["B"]
    assert [p["id"] for p in data["buckets"]["unavailable"]] == ["C"]
    assert [p["id"] for p in data["buckets"]["not_set"]] == ["D"]
    assert data["rating_limit"] == 4.0


def test_get_lineup_for_other_teams_match_is_forbidden(client, fake_db, team_rows):
    team_rows["matches"][0]["team_id"] = "team-2"
    response = client.get("/api/teams/team-1/matches/match-1/lineup")
    assert response.status_code == 403


def lineup_body(slots):
    config = LineConfiguration.from_team_settings(3, ["singles", "doubles", "doubles"])
    return LineupState(line_config=config, slots=tuple(slots)).model_dump(mode="json")


RATINGS = {"A": 4.0, "B": 3.5, "C": 4.5, "D": 3.0}


def members(*ids):
    return [LineupPlayer(**make_member(i, RATINGS.get(i)).model_dump()) for i in ids]


def test_save_lineup_nulls_singles_partner_and_skips_empty_courts(client, fake_db):
    a, b, c, d = members("A", "B", "C", "D")
    body = lineup_body([
        CourtSlot(court_number=1, player1=a, player2=b, lineup_id="lineup-1"),
        CourtSlot(court_number=2, player1=c, player2=d),
        CourtSlot(court_number=3),
    ])

    response = client.put("/api/teams/team-1/matches/match-1/lineup", json=body)

    assert response.status_code == 200
    plan = response.json()["plan"]
    assert [(c["court_number"], c["player1_id"], c["player2_id"]) for c in plan] == [(1, "A", None), (2, "C", "D")]

    inserts = fake_db.statements("INSERT INTO lineups")
    assert len(inserts) == 2
    lineup_id, match_id, court_slot, player1_id, player2_id, rating, published = inserts[0][1]
    assert (lineup_id, match_id, court_slot, player1_id, player2_id, published) == ("lineup-1", "match-1", 1, "A", None, False)
    assert rating == 4.0


def test_save_lineup_rejects_players_off_roster(client, fake_db):
    (stranger,) = members("Z")
    body = lineup_body([CourtSlot(court_number=1, player1=stranger), CourtSlot(court_number=2), CourtSlot(court_number=3)])

    response = client.put("/api/teams/team-1/matches/match-1/lineup", json=body)
    assert response.status_code == 400


def test_save_lineup_rejects_wrong_court_count(client, fake_db):
    body = lineup_body([CourtSlot(court_number=1)])
    response = client.put("/api/teams/team-1/matches/match-1/lineup", json=body)
    assert response.status_code == 400


def test_publish_lineup_marks_published_and_queues_emails(client, fake_db, monkeypatch):
    queued = []
    monkeypatch.setattr(
        notifications, "send_lineup_published",
        lambda recipients, match, team_name: queued.append((recipients, match, team_name)),
    )
    a, b, c = members("A", "B", "C")
    body = lineup_body([
        CourtSlot(court_number=1, player1=a, player2=b),
        CourtSlot(court_number=2, player1=c),
        CourtSlot(court_number=3),
    ])

    response = client.post("/api/teams/team-1/matches/match-1/lineup/publish", json=body)

    assert response.status_code == 200
    assert response.json()["is_published"] is True
    inserts = fake_db.statements("INSERT INTO lineups")
    assert [params[2] for _, params in inserts] == [1, 2]
    assert all(params[6] is True for _, params in inserts)

    recipients, match, team_name = queued[0]
    assert team_name == "Baseline Bandits"
    assert match["date"] == "2026-10-24"
    assert [(r["id"], r["court_number"], r["partner_name"]) for r in recipients] == [
        ("A", 1, None),
        ("C", 2, None),
    ]


def test_availability_summary(client, fake_db):
    data = client.get("/api/teams/team-1/matches/match-1/availability/summary").json()
    assert data == {
        "available": 1, "unavailable": 1, "maybe": 0, "late": 1,
        "last_resort": 0, "not_set": 1, "total": 4,
    }


def test_publish_addresses_players_from_roster_rows(client, fake_db, monkeypatch):
    queued = []
    monkeypatch.setattr(
        notifications, "send_lineup_published",
        lambda recipients, match, team_name: queued.append(recipients),
    )
    a, c = members("A", "C")
    body = lineup_body([
        CourtSlot(court_number=1, player1=a.model_copy(update={"email": None})),
        CourtSlot(court_number=2, player1=c.model_copy(update={
            "email": "someone@elsewhere.example", "full_name": "Anyone", "ntrp_rating": 1.0,
        })),
        CourtSlot(court_number=3),
    ])

    response = client.post("/api/teams/team-1/matches/match-1/lineup/publish", json=body)

    assert response.status_code == 200
    assert [(r["id"], r["email"], r["full_name"]) for r in queued[0]] == [
        ("A", "ana@example.com", "Ana"),
        ("C", "cam@example.com", "Cam"),
    ]
    # Stored ratings too, not the ones in the request
    assert [params[5] for _, params in fake_db.statements("INSERT INTO lineups")] == [4.0, 4.5]


def test_save_lineup_ignores_row_ids_from_the_request(client, fake_db):
    a, c = members("A", "C")
    body = lineup_body([
        CourtSlot(court_number=1, player1=a, lineup_id="stale-id"),
        CourtSlot(court_number=2, player1=c, lineup_id="lineup-from-another-match"),
        CourtSlot(court_number=3, lineup_id="phantom"),
    ])

    response = client.put("/api/teams/team-1/matches/match-1/lineup", json=body)

    assert response.status_code == 200
    inserted_ids = [params[0] for _, params in fake_db.statements("INSERT INTO lineups")]
    assert len(inserted_ids) == 2
    assert inserted_ids[0] == "lineup-1"
    assert inserted_ids[1] not in ("stale-id", "lineup-from-another-match")
    assert [c["lineup_id"] for c in response.json()["plan"]] == inserted_ids


# ============================================================================
# Personal activities and the calendar feed
# ============================================================================

LESSON = {
    "id": "p1",
    "roster_member_id": "A",
    "title": "Lesson",
    "activity_type": "lesson",
    "date": date(2026, 10, 21),
    "time": "07:00",
    "duration_minutes": 60,
    "location": None,
}


def test_create_activity(client, fake_db):
    fake_db.returning["personal_activities"] = LESSON

    response = client.post("/api/teams/team-1/roster/A/activities", json={
        "title": " Lesson ", "activity_type": "lesson", "date": "2026-10-21", "time": "07:00", "duration_minutes": 60,
    })

    assert response.status_code == 200
    assert response.json()["date"] == "2026-10-21"
    (_, params), = fake_db.statements("INSERT INTO personal_activities")
    assert params[1:4] == ("A", "Lesson", "lesson")


def test_create_activity_rejects_unknown_type(client, fake_db):
    response = client.post("/api/teams/team-1/roster/A/activities", json={
        "title": "Lesson", "activity_type": "tournament", "date": "2026-10-21", "time": "07:00",
    })
    assert response.status_code == 422


def test_list_activities(client, fake_db, team_rows):
    team_rows["personal_activities"] = [LESSON]
    data = client.get("/api/teams/team-1/roster/A/activities").json()
    assert [(a["id"], a["activity_type"]) for a in data] == [("p1", "lesson")]


@pytest.fixture
def calendar_rows(team_rows):
    team_rows["availability"] = [{"item_id": "match-1", "status": "late"}]
    team_rows["personal_activities"] = [LESSON]
    return team_rows


CALENDAR_PARAMS = {"team_ids": "team-1", "view": "week", "date": "2026-10-21", "today": "2026-10-19"}


def test_calendar_feed_includes_viewer_activities(client, fake_db, calendar_rows):
    data = client.get("/api/calendar", params=dict(CALENDAR_PARAMS, member_id="A")).json()

    assert list(data["items"]) == ["2026-10-21", "2026-10-24"]
    (activity,) = data["items"]["2026-10-21"]
    assert (activity["type"], activity["name"], activity["activity_type"]) == ("activity", "Lesson", "lesson")
    (match,) = data["items"]["2026-10-24"]
    assert (match["name"], match["availability_status"]) == ("vs Net Gains", "late")


def test_calendar_feed_can_leave_out_activities(client, fake_db, calendar_rows):
    data = client.get("/api/calendar", params=dict(CALENDAR_PARAMS, member_id="A", include_activities=False)).json()

    assert list(data["items"]) == ["2026-10-24"]
    assert not fake_db.statements("SELECT * FROM personal_activities")


def test_calendar_feed_without_viewer_has_no_activities(client, fake_db, calendar_rows):
    data = client.get("/api/calendar", params=CALENDAR_PARAMS).json()

    assert list(data["items"]) == ["2026-10-24"]
    assert data["items"]["2026-10-24"][0]["availability_status"] is None


# ============================================================================
# Default weekly availability
# ============================================================================

DEFAULTS_URL = "/api/teams/team-1/roster/A/availability-defaults"


def stored_defaults(cursor):
    (_, params), = cursor.statements("UPDATE roster_members SET availability_defaults")
    return params[0].adapted, params[1]


def test_weekly_defaults_start_empty_for_every_day(client, fake_db):
    slots = client.get(DEFAULTS_URL).json()["slots"]
    assert list(slots) == ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
    assert all(times == [] for times in slots.values())


def test_toggle_weekly_slot_is_saved(client, fake_db):
    response = client.post(f"{DEFAULTS_URL}/toggle", json={"day": "Monday", "time": "18:00"})

    assert response.json()["slots"]["Monday"] == ["18:00"]
    weekly, member_id = stored_defaults(fake_db)
    assert weekly["Monday"] == ["18:00"]
    assert member_id == "A"


def test_paint_drag_from_selected_slot_clears(client, fake_db, team_rows):
    team_rows["roster_members"][0]["availability_defaults"] = {"Monday": ["18:00", "18:30"], "Friday": ["07:00"]}

    response = client.post(f"{DEFAULTS_URL}/paint", json={"day": "Monday", "times": ["18:00", "18:30", "19:00"]})
    data = response.json()

    assert data["mode"] == "deselect"
    assert data["slots"]["Monday"] == []
    assert data["slots"]["Friday"] == ["07:00"]
    assert stored_defaults(fake_db)[0]["Monday"] == []


def test_replace_weekly_defaults_sorts_and_dedupes(client, fake_db):
    response = client.put(DEFAULTS_URL, json={"slots": {"Tuesday": ["19:00", "07:00", "07:00"]}})

    slots = response.json()["slots"]
    assert slots["Tuesday"] == ["07:00", "19:00"]
    assert slots["Sunday"] == []


@pytest.mark.parametrize("payload", [
    {"day": "Funday", "time": "18:00"},
    {"day": "Monday", "time": "18:15"},
    {"day": "Monday", "time": "23:00"},
])
def test_weekly_slot_outside_grid_is_rejected(client, fake_db, payload):
    response = client.post(f"{DEFAULTS_URL}/toggle", json=payload)

    assert response.status_code == 400
    assert not fake_db.statements("UPDATE roster_members")


# ============================================================================
# Team invitations
# ============================================================================

PENDING_INVITE = {
    "id": "inv-1",
    "team_id": "team-1",
    "invitee_email": "eve@example.com",
    "invitee_name": "Eve",
    "message": None,
    "status": "pending",
    "roster_member_id": None,
}


def test_invite_player_queues_email(client, fake_db, team_rows, monkeypatch):
    sent = []
    monkeypatch.setattr(notifications, "send_team_invitation", lambda invitation, team_name: sent.append((invitation, team_name)))
    team_rows["roster_members"] = []
    fake_db.returning["team_invitations"] = PENDING_INVITE

    response = client.post("/api/teams/team-1/invitations", json={"email": " Eve@Example.com ", "name": "Eve"})

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    (_, params), = fake_db.statements("INSERT INTO team_invitations")
    assert params[1:4] == ("team-1", "eve@example.com", "Eve")
    assert sent == [(PENDING_INVITE, "Baseline Bandits")]


def test_invite_rejects_address_already_on_roster(client, fake_db):
    response = client.post("/api/teams/team-1/invitations", json={"email": "ana@example.com"})

    assert response.status_code == 409
    assert not fake_db.statements("INSERT INTO team_invitations")


def test_invite_rejects_second_pending_invitation(client, fake_db, team_rows):
    team_rows["roster_members"] = []
    team_rows["team_invitations"] = [PENDING_INVITE]

    response = client.post("/api/teams/team-1/invitations", json={"email": "eve@example.com"})
    assert response.status_code == 409


def test_invite_rejects_malformed_email(client, fake_db):
    response = client.post("/api/teams/team-1/invitations", json={"email": "not-an-email"})
    assert response.status_code == 422


def test_accept_invitation_adds_roster_member(client, fake_db, team_rows):
    team_rows["team_invitations"] = [PENDING_INVITE]
    fake_db.returning["roster_members"] = {
        "id": "E", "team_id": "team-1", "full_name": "Eve", "email": "eve@example.com",
        "ntrp_rating": 3.5, "is_active": True,
    }

    response = client.post("/api/invitations/inv-1/accept", json={"ntrp_rating": 3.5})

    assert response.status_code == 200
    assert response.json()["id"] == "E"
    (_, params), = fake_db.statements("INSERT INTO roster_members")
    assert params[1:] == ("team-1", "Eve", "eve@example.com", 3.5)
    (_, update_params), = fake_db.statements("UPDATE team_invitations")
    assert update_params == ("E", "inv-1")


def test_accept_without_any_name_uses_email_local_part(client, fake_db, team_rows):
    team_rows["team_invitations"] = [dict(PENDING_INVITE, invitee_name=None)]
    fake_db.returning["roster_members"] = {"id": "E", "full_name": "eve"}

    client.post("/api/invitations/inv-1/accept", json={})

    (_, params), = fake_db.statements("INSERT INTO roster_members")
    assert params[2] == "eve"


def test_accept_answered_invitation_conflicts(client, fake_db, team_rows):
    team_rows["team_invitations"] = [dict(PENDING_INVITE, status="accepted")]

    response = client.post("/api/invitations/inv-1/accept", json={})

    assert response.status_code == 409
    assert not fake_db.statements("INSERT INTO roster_members")


def test_decline_invitation(client, fake_db, team_rows):
    team_rows["team_invitations"] = [PENDING_INVITE]

    response = client.post("/api/invitations/inv-1/decline")

    assert response.status_code == 200
    (_, params), = fake_db.statements("UPDATE team_invitations")
    assert params == ("inv-1",)


def test_list_invitations_filters_by_status(client, fake_db, team_rows):
    team_rows["team_invitations"] = [PENDING_INVITE]

    data = client.get("/api/teams/team-1/invitations", params={"status": "pending"}).json()

    assert [i["invitee_email"] for i in data] == ["eve@example.com"]
    sql, params = fake_db.executed[-1]
    assert "status = %s" in sql
    assert params == ("team-1", "pending")
