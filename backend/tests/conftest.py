"""
Shared fixtures: roster snapshots, line configurations and a scripted
stand-in for the psycopg2 connection used by the API routes.
"""

import re
from contextlib import contextmanager
from datetime import date

import pytest

import main
from models import AvailabilityMark, LineConfiguration, RosterMember


def make_member(member_id, rating=None, name=None, active=True, email=None):
    return RosterMember(
        id=member_id,
        full_name=name or member_id,
        ntrp_rating=rating,
        is_active=active,
        email=email,
    )


def mark(member_id, status, item_id="match-1"):
    return AvailabilityMark(roster_member_id=member_id, item_id=item_id, status=status)


@pytest.fixture
def roster():
    return [make_member("A", 4.0), make_member("B", 3.5), make_member("C", 4.5)]


@pytest.fixture
def doubles_config():
    return LineConfiguration.from_team_settings(1, ["doubles"])


@pytest.fixture
def mixed_config():
    return LineConfiguration.from_team_settings(3, ["singles", "doubles", "mixed"])


class FakeCursor:
    """Answers SELECTs from canned rows keyed by table and records every statement."""

    def __init__(self, tables):
        self.tables = tables
        # table -> row handed back by INSERT ... RETURNING
        self.returning = {}
        self.executed = []
        self.rowcount = 0
        self._results = []

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        self._results = []
        if sql.lstrip().upper().startswith("SELECT"):
            for table, rows in self.tables.items():
                if re.search(rf"\bFROM {table}\b", sql):
                    self._results = list(rows)
                    break
        elif "RETURNING" in sql:
            insert = re.search(r"INSERT INTO (\w+)", sql)
            if insert and insert.group(1) in self.returning:
                self._results = [self.returning[insert.group(1)]]
        self.rowcount = len(self._results)

    def fetchone(self):
        return self._results[0] if self._results else None

    def fetchall(self):
        return list(self._results)

    def statements(self, prefix):
        return [(sql, params) for sql, params in self.executed if sql.strip().startswith(prefix)]


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor

    def cursor(self):
        return self._cursor


@pytest.fixture
def team_rows():
    return {
        "teams": [{
            "id": "team-1",
            "name": "Baseline Bandits",
            "rating_limit": 4.0,
            "total_lines": 3,
            "line_match_types": ["singles", "doubles", "doubles"],
        }],
        "matches": [{
            "id": "match-1",
            "team_id": "team-1",
            "date": date(2026, 10, 24),
            "time": "18:00",
            "opponent_name": "Net Gains",
            "venue": "Riverside Courts",
            "is_home": True,
        }],
        "roster_members": [
            {"id": "A", "team_id": "team-1", "full_name": "Ana", "email": "ana@example.com", "ntrp_rating": 4.0, "is_active": True},
            {"id": "B", "team_id": "team-1", "full_name": "Ben", "email": None, "ntrp_rating": 3.5, "is_active": True},
            {"id": "C", "team_id": "team-1", "full_name": "Cam", "email": "cam@example.com", "ntrp_rating": 4.5, "is_active": True},
            {"id": "D", "team_id": "team-1", "full_name": "Dee", "email": "dee@example.com", "ntrp_rating": 3.0, "is_active": True},
        ],
        "availability": [
            {"roster_member_id": "A", "status": "available"},
            {"roster_member_id": "B", "status": "late"},
            {"roster_member_id": "C", "status": "unavailable"},
        ],
        "lineups": [
            {"id": "lineup-1", "match_id": "match-1", "court_slot": 1, "player1_id": "A", "player2_id": "B"},
        ],
    }


@pytest.fixture
def fake_db(monkeypatch, team_rows):
    cursor = FakeCursor(team_rows)

    @contextmanager
    def fake_get_db():
        yield FakeConnection(cursor)

    monkeypatch.setattr(main, "get_db", fake_get_db)
    return cursor
