"""Initialize SQLite database for local development."""

from strike_coach.database import sync_engine
from strike_coach.models import Base, TrainingSession, StrikeAttempt  # noqa: F401 - register tables


def init_db(engine=sync_engine):
    """Create all tables in the database."""
    Base.metadata.create_all(bind=engine)
    print("Database tables created successfully!")


if __name__ == "__main__":
    init_db()
