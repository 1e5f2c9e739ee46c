from datetime import date

from moviemonday.models.movie_monday import MovieMonday, MovieMondayEventDetails
from moviemonday.models.statistic import Statistic, TOTAL_MEALS_SHARED
from moviemonday.services.statistics_service import StatisticsService, count_entries


def test_statistics_start_at_zero(client, db_session):
    response = client.get("/api/statistics")
    assert response.status_code == 200
    assert response.json() == {
        "totalMovieMondays": 0,
        "totalMealsShared": 0,
        "totalCocktailsConsumed": 0,
    }
    assert db_session.query(Statistic).count() == 3


def test_count_entries_handles_legacy_values():
    assert count_entries(None) == 0
    assert count_entries([]) == 0
    assert count_entries(["Pizza", "Tacos"]) == 2
    assert count_entries('["Pizza", "Tacos", "Soup"]') == 3
    assert count_entries("Pizza") == 1
    assert count_entries("   ") == 0


def test_increment_creates_missing_counter(db_session):
    StatisticsService.increment(db_session, TOTAL_MEALS_SHARED, 4)
    db_session.commit()

    assert StatisticsService.get_statistics(db_session)["total_meals_shared"] == 4


def test_recalculate_rebuilds_from_source(client, db_session, user_factory, group_factory, auth_headers):
    alice = user_factory("alice")
    group = group_factory(alice)
    mm_id = client.post(
        "/api/movie-monday/create", json={"date": "2024-03-04", "groupId": group.id}, headers=auth_headers(alice)
    ).json()["id"]

    # Rows written behind the API's back, including a legacy JSON string
    other = MovieMonday(date=date(2024, 3, 11), group_id=group.id, picker_user_id=alice.id)
    db_session.add(other)
    db_session.flush()
    db_session.add(MovieMondayEventDetails(movie_monday_id=mm_id, meals=["Pizza", "Tacos"], cocktails=["Negroni"]))
    db_session.add(MovieMondayEventDetails(movie_monday_id=other.id, meals='["Soup"]', cocktails=[]))
    db_session.commit()

    assert client.get("/api/statistics").json()["totalMovieMondays"] == 1

    assert client.post("/api/statistics/recalculate").status_code == 401

    response = client.post("/api/statistics/recalculate", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json() == {
        "totalMovieMondays": 2,
        "totalMealsShared": 3,
        "totalCocktailsConsumed": 1,
    }
