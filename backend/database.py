import logging
import psycopg2
from psycopg2.extras import RealDictCursor
from contextlib import contextmanager
from config import get_db_config

logger = logging.getLogger(__name__)


@contextmanager
def get_db():
    """Get a database connection with automatic commit/rollback."""
    config = get_db_config()
    conn = psycopg2.connect(
        host=config["host"],
        port=config["port"],
        database=config["database"],
        user=config["user"],
        password=config["password"],
        cursor_factory=RealDictCursor
    )
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Initialize database schema."""
    with get_db() as conn:
        cursor = conn.cursor()

        # Teams carry the lineup configuration
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS teams (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                rating_limit REAL,
                total_lines INTEGER DEFAULT 3,
                line_match_types JSONB DEFAULT '[]',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Roster members are deactivated, never deleted, to keep match history
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS roster_members (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
                full_name TEXT NOT NULL,
                email TEXT,
                ntrp_rating REAL,
                is_active BOOLEAN DEFAULT TRUE,
                availability_defaults JSONB DEFAULT '{}',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS matches (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
                date DATE NOT NULL,
                time TEXT NOT NULL,
                opponent_name TEXT NOT NULL,
                venue TEXT,
                is_home BOOLEAN DEFAULT TRUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS events (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
                event_name TEXT NOT NULL,
                event_type TEXT,
                date DATE NOT NULL,
                time TEXT NOT NULL,
                location TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # One mark per member per match or event
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS availability (
                id SERIAL PRIMARY KEY,
                roster_member_id TEXT NOT NULL REFERENCES roster_members(id) ON DELETE CASCADE,
                match_id TEXT REFERENCES matches(id) ON DELETE CASCADE,
                event_id TEXT REFERENCES events(id) ON DELETE CASCADE,
                status TEXT NOT NULL CHECK(status IN ('available', 'unavailable', 'maybe', 'late', 'last_resort')),
                comment TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(roster_member_id, match_id),
                UNIQUE(roster_member_id, event_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lineups (
                id TEXT PRIMARY KEY,
                match_id TEXT NOT NULL REFERENCES matches(id) ON DELETE CASCADE,
                court_slot INTEGER NOT NULL,
                player1_id TEXT REFERENCES roster_members(id) ON DELETE SET NULL,
                player2_id TEXT REFERENCES roster_members(id) ON DELETE SET NULL,
                combined_rating REAL,
                is_published BOOLEAN DEFAULT FALSE,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(match_id, court_slot)
            )
        """)

        # Activities belong to one member and show only on their own calendar
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS personal_activities (
                id TEXT PRIMARY KEY,
                roster_member_id TEXT NOT NULL REFERENCES roster_members(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                activity_type TEXT,
                date DATE NOT NULL,
                time TEXT NOT NULL,
                duration_minutes INTEGER,
                location TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS team_invitations (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
                invitee_email TEXT NOT NULL,
                invitee_name TEXT,
                message TEXT,
                status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'accepted', 'declined')),
                roster_member_id TEXT REFERENCES roster_members(id) ON DELETE SET NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                responded_at TIMESTAMP
            )
        """)

        conn.commit()
        logger.info("Database schema initialized")


if __name__ == "__main__":
    init_db()
    print("Database initialized successfully")
