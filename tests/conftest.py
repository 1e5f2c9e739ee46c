import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from moviemonday.config import Settings
from moviemonday.database import Base, get_db
from moviemonday.main import create_app
from moviemonday.models.group import Group
from moviemonday.models.user import User
from moviemonday.models.watchlist import DEFAULT_CATEGORY_NAME, WatchlistCategory
from moviemonday.services.email_service import EmailService
from moviemonday.services.tmdb_service import TMDBService, get_tmdb_service
from moviemonday.utils.cache import clear_all_cache
from moviemonday.utils.security import create_access_token, hash_password

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Password123!"

# Canned TMDB payloads keyed by movie id; any other id behaves like an outage
TMDB_MOVIES = {
    550: {
        "id": 550,
        "title": "Fight Club",
        "release_date": "1999-10-15",
        "genres": [{"id": 18, "name": "Drama"}, {"id": 53, "name": "Thriller"}],
        "credits": {
            "cast": [
                {"id": 819, "name": "Edward Norton", "character": "Narrator", "order": 0},
                {"id": 287, "name": "Brad Pitt", "character": "Tyler Durden", "order": 1},
            ],
            "crew": [
                {"id": 7467, "name": "David Fincher", "job": "Director", "department": "Directing"},
                {"id": 7468, "name": "Jim Uhls", "job": "Screenplay", "department": "Writing"},
                {"id": 9999, "name": "Someone Else", "job": "Producer", "department": "Production"},
            ],
        },
    },
    603: {
        "id": 603,
        "title": "The Matrix",
        "release_date": "1999-03-30",
        "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
        "credits": {
            "cast": [{"id": 6384, "name": "Keanu Reeves", "character": "Neo", "order": 0}],
            "crew": [
                {"id": 9339, "name": "Lana Wachowski", "job": "Director", "department": "Directing"},
            ],
        },
    },
}


class FakeTMDBService(TMDBService):
    """TMDBService answering from TMDB_MOVIES instead of the network."""

    requests = []

    def _make_request(self, endpoint, params=None):
        FakeTMDBService.requests.append(endpoint)
        movie_id = int(endpoint.rstrip("/").split("/")[-1])
        if movie_id not in TMDB_MOVIES:
            raise HTTPException(status_code=502, detail="TMDB API error")
        return TMDB_MOVIES[movie_id]


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=SQLALCHEMY_DATABASE_URL,
        AUTO_CREATE_TABLES=False,
        SECRET_KEY="test-secret-key",
        FRONTEND_URL="http://frontend",
        SMTP_HOST="smtp.test",
        EMAIL_FROM="noreply@moviemonday.test",
        TMDB_API_KEY="test-key",
        AUTH_RATE_LIMIT=1000,
        COMMENT_RATE_LIMIT=1000,
        VOTE_RATE_LIMIT=1000,
        COMMENT_MIN_ACCOUNT_AGE_HOURS=0,
    )


@pytest.fixture
def db_session():
    """Provide a clean database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(test_settings):
    application = create_app(test_settings)
    application.state.session_factory = TestingSessionLocal
    return application


@pytest.fixture
def client(app, test_settings, db_session):
    """FastAPI test client with the database and TMDB dependencies overridden."""

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tmdb_service] = lambda: FakeTMDBService(test_settings)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_caches():
    clear_all_cache()
    FakeTMDBService.requests = []
    yield
    clear_all_cache()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing email instead of talking to SMTP."""
    outbox = []

    def fake_send(self, recipient, subject, body):
        outbox.append({"recipient": recipient, "subject": subject, "body": body})

    monkeypatch.setattr(EmailService, "_send_email", fake_send)
    return outbox


def create_user(session, username="alice", email=None, password=DEFAULT_PASSWORD, verified=True):
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        password_hash=hash_password(password),
        is_verified=verified,
    )
    session.add(user)
    session.flush()
    session.add(WatchlistCategory(
        user_id=user.id,
        name=DEFAULT_CATEGORY_NAME,
        is_public=False,
        slug=f"my-watchlist-{user.id}",
    ))
    session.commit()
    session.refresh(user)
    return user


def create_group(session, owner, *members, name="Film Club"):
    group = Group(name=name, created_by_id=owner.id)
    group.members.append(owner)
    for member in members:
        group.members.append(member)
    session.add(group)
    session.commit()
    session.refresh(group)
    return group


@pytest.fixture
def user_factory(db_session):
    def factory(username="alice", **kwargs):
        return create_user(db_session, username=username, **kwargs)
    return factory


@pytest.fixture
def group_factory(db_session):
    def factory(owner, *members, name="Film Club"):
        return create_group(db_session, owner, *members, name=name)
    return factory


@pytest.fixture
def auth_headers(test_settings):
    def build(user):
        token = create_access_token(test_settings, {"sub": user.username, "user_id": user.id})
        return {"Authorization": f"Bearer {token}"}
    return build
