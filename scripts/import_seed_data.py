#!/usr/bin/env python3
"""
Import seed data into local database for testing.

Usage:
    python scripts/import_seed_data.py

Reads from data/seed_data.json and imports teams, roster, schedule,
availability, saved lineups and personal activities. Requires DATABASE_URL
to be set in .env file.
"""

import json
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from psycopg2.extras import Json

from config import DATA_DIR
from database import get_db, init_db

TABLES = ["teams", "roster_members", "matches", "events", "availability", "lineups", "personal_activities"]


def import_data():
    """Import seed data from JSON file."""
    seed_file = DATA_DIR / "seed_data.json"

    if not seed_file.exists():
        print(f"Error: {seed_file} not found")
        print("Run export_prod_data.py first to create seed data")
        sys.exit(1)

    with open(seed_file) as f:
        data = json.load(f)

    print(f"Loading seed data from {seed_file}")
    for table in TABLES:
        print(f"  {table}: {len(data.get(table, []))}")

    # Initialize database schema
    print("\nInitializing database schema...")
    init_db()

    with get_db() as conn:
        cursor = conn.cursor()

        for team in data.get("teams", []):
            cursor.execute("""
                INSERT INTO teams (id, name, rating_limit, total_lines, line_match_types, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    name = EXCLUDED.name,
                    rating_limit = EXCLUDED.rating_limit,
                    total_lines = EXCLUDED.total_lines,
                    line_match_types = EXCLUDED.line_match_types
            """, (
                team["id"],
                team["name"],
                team.get("rating_limit"),
                team.get("total_lines", 3),
                Json(team.get("line_match_types") or []),
                team.get("created_at")
            ))
        print(f"Imported {len(data.get('teams', []))} teams")

        for member in data.get("roster_members", []):
            cursor.execute("""
                INSERT INTO roster_members (id, team_id, full_name, email, ntrp_rating, is_active,
                                            availability_defaults, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    full_name = EXCLUDED.full_name,
                    ntrp_rating = EXCLUDED.ntrp_rating,
                    is_active = EXCLUDED.is_active,
                    availability_defaults = EXCLUDED.availability_defaults
            """, (
                member["id"],
                member["team_id"],
                member["full_name"],
                member.get("email"),
                member.get("ntrp_rating"),
                member.get("is_active", True),
                Json(member.get("availability_defaults") or {}),
                member.get("created_at")
            ))
        print(f"Imported {len(data.get('roster_members', []))} roster members")

        for match in data.get("matches", []):
            cursor.execute("""
                INSERT INTO matches (id, team_id, date, time, opponent_name, venue, is_home)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
            """, (
                match["id"],
                match["team_id"],
                match["date"],
                match["time"],
                match["opponent_name"],
                match.get("venue"),
                match.get("is_home", True)
            ))
        print(f"Imported {len(data.get('matches', []))} matches")

        for event in data.get("events", []):
            cursor.execute("""
                INSERT INTO events (id, team_id, event_name, event_type, date, time, location)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
            """, (
                event["id"],
                event["team_id"],
                event["event_name"],
                event.get("event_type"),
                event["date"],
                event["time"],
                event.get("location")
            ))
        print(f"Imported {len(data.get('events', []))} events")

        for avail in data.get("availability", []):
            item_column = "match_id" if avail.get("match_id") else "event_id"
            cursor.execute(f"""
                INSERT INTO availability (roster_member_id, {item_column}, status, comment, updated_at)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (roster_member_id, {item_column})
                DO UPDATE SET status = EXCLUDED.status
            """, (
                avail["roster_member_id"],
                avail[item_column],
                avail["status"],
                avail.get("comment"),
                avail.get("updated_at")
            ))
        print(f"Imported {len(data.get('availability', []))} availability records")

        for row in data.get("lineups", []):
            cursor.execute("""
                INSERT INTO lineups (id, match_id, court_slot, player1_id, player2_id, combined_rating, is_published)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (match_id, court_slot) DO NOTHING
            """, (
                row["id"],
                row["match_id"],
                row["court_slot"],
                row.get("player1_id"),
                row.get("player2_id"),
                row.get("combined_rating"),
                row.get("is_published", False)
            ))
        print(f"Imported {len(data.get('lineups', []))} lineup courts")

        for activity in data.get("personal_activities", []):
            cursor.execute("""
                INSERT INTO personal_activities
                    (id, roster_member_id, title, activity_type, date, time, duration_minutes, location)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
            """, (
                activity["id"],
                activity["roster_member_id"],
                activity["title"],
                activity.get("activity_type"),
                activity["date"],
                activity["time"],
                activity.get("duration_minutes"),
                activity.get("location")
            ))
        print(f"Imported {len(data.get('personal_activities', []))} personal activities")

    print("\nSeed data imported successfully!")


if __name__ == "__main__":
    import_data()
