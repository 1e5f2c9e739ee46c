from datetime import date, datetime, timedelta, timezone

import pytest

from moviemonday.models.group import Group
from moviemonday.services.tmdb_service import TMDBService
from moviemonday.utils.cache import cache, clear_all_cache, get_cache_stats
from moviemonday.utils.dates import ensure_aware, is_expired, parse_day, utcnow
from moviemonday.utils.slugs import slugify, to_base36, unique_slug

from conftest import TMDB_MOVIES, create_group, create_user


@pytest.mark.parametrize("value,expected", [
    ("Film Club", "film-club"),
    ("  Film   Club!! ", "film-club"),
    ("Sci-Fi & Fantasy", "sci-fi-fantasy"),
    ("!!!", "item"),
])
def test_slugify(value, expected):
    assert slugify(value) == expected


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"


def test_unique_slug_appends_counter(db_session):
    alice = create_user(db_session, "alice")
    first = create_group(db_session, alice)
    first.slug = "film-club"
    second = create_group(db_session, alice)
    second.slug = "film-club-1"
    db_session.commit()

    assert unique_slug(db_session, Group, "film-club") == "film-club-2"
    assert unique_slug(db_session, Group, "film-club", exclude_id=first.id) == "film-club"
    assert unique_slug(db_session, Group, "book-club") == "book-club"


def test_parse_day():
    assert parse_day("2024-03-04") == date(2024, 3, 4)
    assert parse_day("2024-03-04T19:30:00Z") == date(2024, 3, 4)
    with pytest.raises(ValueError):
        parse_day("03/04/2024")
    with pytest.raises(ValueError):
        parse_day("")


def test_expiry_helpers():
    naive = datetime(2024, 1, 1, 12, 0)
    assert ensure_aware(naive).tzinfo == timezone.utc
    assert is_expired(None)
    assert is_expired(utcnow() - timedelta(seconds=1))
    assert not is_expired(utcnow() + timedelta(hours=1))


def test_cache_reuses_results():
    calls = []

    @cache(ttl=60)
    def lookup(value):
        calls.append(value)
        return value * 2

    assert lookup(2) == 4
    assert lookup(2) == 4
    assert calls == [2]
    assert get_cache_stats()["size"] >= 1

    clear_all_cache()
    lookup(2)
    assert calls == [2, 2]


def test_extract_metadata_keeps_cast_and_writing_directing_crew():
    metadata = TMDBService.extract_metadata(TMDB_MOVIES[550])

    assert metadata["genres"] == ["Drama", "Thriller"]
    assert metadata["release_year"] == 1999
    assert [c["name"] for c in metadata["cast"]] == ["Edward Norton", "Brad Pitt"]
    assert [(c["name"], c["job"]) for c in metadata["crew"]] == [
        ("David Fincher", "Director"),
        ("Jim Uhls", "Writer"),
    ]


def test_extract_metadata_tolerates_missing_fields():
    metadata = TMDBService.extract_metadata({"id": 1, "release_date": ""})

    assert metadata == {"genres": [], "release_year": None, "cast": [], "crew": []}


def test_health_endpoints(client, db_session):
    assert client.get("/").json()["status"] == "healthy"

    response = client.get("/health")
    assert response.status_code == 200
    assert "tmdb_cache" in response.json()
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_unknown_route_gets_cors_headers(client, db_session):
    response = client.get("/api/nothing-here", headers={"Origin": "http://frontend"})
    assert response.status_code == 404
    assert response.headers["access-control-allow-origin"] == "http://frontend"
