"""Shared pytest fixtures for otg-sports-api tests."""
import sys
from pathlib import Path
from datetime import datetime, timedelta, date
from typing import Callable, Generator, Optional, Tuple

import pytest
from sqlalchemy.orm import Session

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.database import Database
from app.core.security import generate_api_key
from app.models import ApiKey


@pytest.fixture(scope="function")
def database(tmp_path) -> Generator[Database, None, None]:
    """
    Isolated file-backed SQLite database with all tables created.

    A file (not :memory:) so the API, the sync threads and the last-used
    worker each get their own connection to the same data.
    """
    db = Database(f"sqlite:///{tmp_path / 'test.db'}").init()
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture(scope="function")
def db_session(database: Database) -> Generator[Session, None, None]:
    """Session on the test database."""
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def make_api_key(db_session: Session) -> Callable[..., Tuple[str, ApiKey]]:
    """
    Factory creating stored API keys.

    Returns:
        (plaintext key, ApiKey row)
    """
    def _make(
        name: str = "Test Tenant",
        sports=("*",),
        rate_limit: int = 100,
        is_active: bool = True,
        expires_at: Optional[datetime] = None,
    ) -> Tuple[str, ApiKey]:
        generated = generate_api_key()
        api_key = ApiKey(
            key_hash=generated.key_hash,
            key_prefix=generated.display_prefix,
            name=name,
            sports=list(sports),
            rate_limit=rate_limit,
            is_active=is_active,
            created_at=datetime.utcnow(),
            expires_at=expires_at,
        )
        db_session.add(api_key)
        db_session.commit()
        return generated.plaintext, api_key

    return _make


@pytest.fixture
def expired_at() -> datetime:
    return datetime.utcnow() - timedelta(days=1)


@pytest.fixture(autouse=True)
def reset_public_limiter():
    """Public endpoint limits are process-wide; start every test fresh."""
    from app.core.limiter import limiter
    limiter.reset()
    yield


@pytest.fixture
def test_client(database: Database):
    """TestClient on an app bound to the test database, scheduler off."""
    from fastapi.testclient import TestClient
    from app.main import create_app

    app = create_app(database=database, enable_scheduler=False)
    with TestClient(app) as client:
        yield client


# =============================================================================
# Feed documents (unwrapped ``scores`` objects)
# =============================================================================

@pytest.fixture
def soccer_scores() -> dict:
    """Soccer feed with one league; matches as a list, one match has a bad id."""
    return {
        "sport": "soccer",
        "category": [
            {
                "@name": "England: Premier League",
                "@gid": "1204",
                "@id": "1204",
                "matches": {
                    "@date": "Dec 22",
                    "@formatted_date": "22.12.2024",
                    "match": [
                        {
                            "@id": "4521337",
                            "@status": "FT",
                            "@date": "Dec 22",
                            "@formatted_date": "22.12.2024",
                            "@time": "15:00",
                            "localteam": {"@id": "9260", "@name": "Arsenal", "@goals": "2"},
                            "visitorteam": {"@id": "9092", "@name": "Chelsea", "@goals": "1"},
                            "ht": {"@score": "[1-0]"},
                            "ft": {"@score": "[2-1]"},
                            "events": {
                                "event": [
                                    {"@type": "goal", "@team": "localteam", "@player": "B. Saka", "@time": "12"},
                                    {"@type": "yellowcard", "@team": "visitorteam", "@player": "E. Fernandez", "@time": "40"},
                                ]
                            },
                        },
                        {
                            "@id": "4521338",
                            "@status": "NS",
                            "@date": "Dec 22",
                            "@formatted_date": "22.12.2024",
                            "@time": "17:30",
                            "localteam": {"@id": "9249", "@name": "Liverpool", "@goals": ""},
                            "visitorteam": {"@id": "9281", "@name": "Everton", "@goals": "?"},
                            "ht": {"@score": ""},
                            "ft": {"@score": ""},
                            "events": None,
                        },
                        {
                            "@id": "not-a-number",
                            "@status": "NS",
                            "@formatted_date": "22.12.2024",
                            "@time": "20:00",
                            "localteam": {"@id": "1", "@name": "A"},
                            "visitorteam": {"@id": "2", "@name": "B"},
                        },
                    ],
                },
            },
        ],
    }


@pytest.fixture
def basketball_scores() -> dict:
    """Basketball feed with a single category serialized as a bare object."""
    return {
        "sport": "basketball",
        "category": {
            "name": "USA: NBA",
            "gid": "1046",
            "id": "1046",
            "file_group": "nba",
            "match": [
                {
                    "id": "330441",
                    "status": "Q3",
                    "date": "22.12.2024",
                    "time": "01:00",
                    "timer": "07:12",
                    "localteam": {"id": "1066", "name": "Boston Celtics", "totalscore": "78",
                                  "q1": "28", "q2": "30", "q3": "20", "q4": "", "ot": ""},
                    "awayteam": {"id": "1068", "name": "Philadelphia 76ers", "totalscore": "70",
                                 "q1": "25", "q2": "27", "q3": "18", "q4": "", "ot": ""},
                },
                {
                    "id": "330442",
                    "status": "Not Started",
                    "date": "22.12.2024",
                    "time": "TBA",
                    "localteam": {"id": "1070", "name": "Golden State Warriors"},
                    "awayteam": {"id": "1071", "name": "Los Angeles Lakers"},
                },
            ],
        },
    }


@pytest.fixture
def reference_day() -> date:
    return date(2024, 12, 20)
