from types import SimpleNamespace

import pytest

from moviemonday.models.watchlist import WatchlistCategory, WatchlistItem, WatchlistLike
from moviemonday.services.watchlist_service import WatchlistService

BASE = "/api/watchlists"


@pytest.fixture
def alice(user_factory):
    return user_factory("alice")


@pytest.fixture
def bob(user_factory):
    return user_factory("bob")


def default_category_id(db_session, user):
    return db_session.query(WatchlistCategory.id).filter(
        WatchlistCategory.user_id == user.id,
        WatchlistCategory.name == "My Watchlist",
    ).scalar()


def create_category(client, headers, name="Sci-Fi", **extra):
    return client.post(f"{BASE}/categories", json={"name": name, **extra}, headers=headers)


def add_item(client, headers, category_id, tmdb_movie_id, title="Some Movie"):
    return client.post(
        f"{BASE}/categories/{category_id}/movies",
        json={"tmdbMovieId": tmdb_movie_id, "title": title},
        headers=headers,
    )


# ==================== CATEGORIES ====================

def test_create_and_list_categories(client, alice, auth_headers):
    headers = auth_headers(alice)

    response = create_category(client, headers, "Sci-Fi", description="Space and robots")
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Sci-Fi"
    assert body["moviesCount"] == 0
    assert body["slug"].startswith(f"sci-fi-{alice.id}-")

    response = create_category(client, headers, "Sci-Fi")
    assert response.status_code == 409
    assert response.json()["detail"] == "You already have a watchlist with this name"

    names = [c["name"] for c in client.get(f"{BASE}/categories", headers=headers).json()]
    assert sorted(names) == ["My Watchlist", "Sci-Fi"]


def test_list_categories_with_preview_items(client, alice, auth_headers):
    headers = auth_headers(alice)
    category_id = create_category(client, headers).json()["id"]
    for tmdb_movie_id in range(1, 7):
        add_item(client, headers, category_id, tmdb_movie_id, f"Movie {tmdb_movie_id}")

    categories = client.get(f"{BASE}/categories?include_items=true", headers=headers).json()
    scifi = next(c for c in categories if c["id"] == category_id)
    assert scifi["moviesCount"] == 6
    assert [i["title"] for i in scifi["items"]] == ["Movie 1", "Movie 2", "Movie 3", "Movie 4"]

    categories = client.get(f"{BASE}/categories", headers=headers).json()
    assert all(c["items"] is None for c in categories)


def test_default_watchlist_cannot_be_deleted(client, db_session, alice, auth_headers):
    headers = auth_headers(alice)
    default_id = default_category_id(db_session, alice)
    other_id = create_category(client, headers).json()["id"]

    response = client.delete(f"{BASE}/categories/{default_id}", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete the default watchlist"

    assert client.delete(f"{BASE}/categories/{other_id}", headers=headers).status_code == 200
    assert default_category_id(db_session, alice) == default_id


def test_default_watchlist_cannot_be_renamed(client, db_session, alice, auth_headers):
    headers = auth_headers(alice)
    default_id = default_category_id(db_session, alice)

    response = client.put(f"{BASE}/categories/{default_id}", json={"name": "Renamed"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "The default watchlist cannot be renamed"

    # Other fields can still change
    response = client.put(f"{BASE}/categories/{default_id}", json={"isPublic": True}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "My Watchlist"

    db_session.expire_all()
    count = db_session.query(WatchlistCategory).filter(
        WatchlistCategory.user_id == alice.id,
        WatchlistCategory.name == "My Watchlist",
    ).count()
    assert count == 1


def test_only_watchlist_cannot_be_deleted(client, db_session, alice, auth_headers):
    headers = auth_headers(alice)
    db_session.query(WatchlistCategory).filter(WatchlistCategory.user_id == alice.id).delete()
    db_session.commit()
    only_id = create_category(client, headers).json()["id"]

    response = client.delete(f"{BASE}/categories/{only_id}", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete the only watchlist category"


def test_rename_regenerates_slug(client, alice, auth_headers):
    headers = auth_headers(alice)
    created = create_category(client, headers).json()

    response = client.put(f"{BASE}/categories/{created['id']}", json={"name": "Horror"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Horror"
    assert response.json()["slug"].startswith(f"horror-{alice.id}-")

    response = client.put(f"{BASE}/categories/{created['id']}", json={"name": "My Watchlist"}, headers=headers)
    assert response.status_code == 409


def test_other_users_categories_are_not_found(client, alice, bob, auth_headers):
    category_id = create_category(client, auth_headers(alice)).json()["id"]

    response = client.put(f"{BASE}/categories/{category_id}", json={"name": "Mine"}, headers=auth_headers(bob))
    assert response.status_code == 404
    assert add_item(client, auth_headers(bob), category_id, 550).status_code == 404


def test_private_category_visible_to_owner_only(client, alice, bob, auth_headers):
    created = create_category(client, auth_headers(alice)).json()
    add_item(client, auth_headers(alice), created["id"], 550, "Fight Club")

    response = client.get(f"{BASE}/categories/{created['id']}", headers=auth_headers(alice))
    assert response.status_code == 200
    assert [i["title"] for i in response.json()["items"]] == ["Fight Club"]
    assert response.json()["owner"]["username"] == "alice"

    response = client.get(f"{BASE}/categories/{created['id']}", headers=auth_headers(bob))
    assert response.status_code == 403
    assert response.json()["detail"] == "This watchlist is private"

    assert client.get(f"{BASE}/categories/{created['slug']}").status_code == 403


def test_public_category_by_slug_for_anonymous_viewer(client, alice, auth_headers):
    created = create_category(client, auth_headers(alice), isPublic=True).json()

    response = client.get(f"{BASE}/categories/{created['slug']}")
    assert response.status_code == 200
    assert response.json()["id"] == created["id"]
    assert response.json()["userHasLiked"] is False

    assert client.get(f"{BASE}/categories/no-such-slug").status_code == 404


# ==================== ITEMS ====================

def test_add_update_remove_item(client, alice, auth_headers):
    headers = auth_headers(alice)
    category_id = create_category(client, headers).json()["id"]

    response = add_item(client, headers, category_id, 550, "Fight Club")
    assert response.status_code == 201
    item = response.json()
    assert item["sortOrder"] == 1
    assert add_item(client, headers, category_id, 603).json()["sortOrder"] == 2

    response = add_item(client, headers, category_id, 550, "Fight Club")
    assert response.status_code == 409
    assert response.json()["detail"] == "Movie already in this watchlist"

    response = client.put(
        f"{BASE}/categories/{category_id}/movies/{item['id']}",
        json={"userNote": "Rewatch", "userRating": 9, "watched": True},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["userNote"] == "Rewatch"
    assert response.json()["userRating"] == 9
    assert response.json()["watched"] is True

    url = f"{BASE}/categories/{category_id}/movies/{item['id']}"
    assert client.delete(url, headers=headers).status_code == 200
    assert client.delete(url, headers=headers).status_code == 404


def test_update_item_rejects_null_for_required_fields(client, alice, auth_headers):
    headers = auth_headers(alice)
    category_id = create_category(client, headers).json()["id"]
    item_id = add_item(client, headers, category_id, 550).json()["id"]
    url = f"{BASE}/categories/{category_id}/movies/{item_id}"

    assert client.put(url, json={"watched": None}, headers=headers).status_code == 422
    assert client.put(url, json={"sortOrder": None}, headers=headers).status_code == 422

    # Nullable fields can still be cleared
    client.put(url, json={"userNote": "Later"}, headers=headers)
    response = client.put(url, json={"userNote": None}, headers=headers)
    assert response.status_code == 200
    assert response.json()["userNote"] is None
    assert response.json()["watched"] is False
    assert response.json()["sortOrder"] == 1


def test_reorder_is_all_or_nothing(client, db_session, alice, auth_headers):
    headers = auth_headers(alice)
    category_id = create_category(client, headers).json()["id"]
    first = add_item(client, headers, category_id, 550).json()["id"]
    second = add_item(client, headers, category_id, 603).json()["id"]
    foreign = add_item(client, headers, default_category_id(db_session, alice), 13).json()["id"]

    response = client.post(
        f"{BASE}/categories/{category_id}/reorder",
        json={"items": [{"id": first, "sortOrder": 5}, {"id": foreign, "sortOrder": 6}]},
        headers=headers,
    )
    assert response.status_code == 400
    db_session.expire_all()
    assert db_session.get(WatchlistItem, first).sort_order == 1

    response = client.post(
        f"{BASE}/categories/{category_id}/reorder",
        json={"items": [{"id": first, "sortOrder": 2}, {"id": second, "sortOrder": 1}]},
        headers=headers,
    )
    assert response.status_code == 200

    items = client.get(f"{BASE}/categories/{category_id}", headers=headers).json()["items"]
    assert [i["id"] for i in items] == [second, first]


# ==================== LIKES AND DISCOVERY ====================

def test_like_toggle_counts(client, alice, bob, auth_headers):
    category_id = create_category(client, auth_headers(alice), isPublic=True).json()["id"]

    response = client.post(f"{BASE}/categories/{category_id}/like", headers=auth_headers(bob))
    assert response.json() == {"liked": True, "likesCount": 1}

    response = client.post(f"{BASE}/categories/{category_id}/like", headers=auth_headers(alice))
    assert response.json() == {"liked": True, "likesCount": 2}

    liked = client.get(f"{BASE}/likes", headers=auth_headers(bob)).json()
    assert [c["id"] for c in liked] == [category_id]
    assert liked[0]["owner"]["username"] == "alice"

    detail = client.get(f"{BASE}/categories/{category_id}", headers=auth_headers(bob)).json()
    assert detail["userHasLiked"] is True

    response = client.post(f"{BASE}/categories/{category_id}/like", headers=auth_headers(bob))
    assert response.json() == {"liked": False, "likesCount": 1}
    assert client.get(f"{BASE}/likes", headers=auth_headers(bob)).json() == []


def test_unlike_of_already_removed_like_keeps_count(client, db_session, monkeypatch, alice, bob, auth_headers):
    category_id = create_category(client, auth_headers(alice), isPublic=True).json()["id"]
    client.post(f"{BASE}/categories/{category_id}/like", headers=auth_headers(bob))
    stale = db_session.query(WatchlistLike).one()

    # Another request unlikes first
    assert client.post(f"{BASE}/categories/{category_id}/like", headers=auth_headers(bob)).json()["likesCount"] == 0

    # This request read the like row before it disappeared
    real_query = db_session.query

    def query(*entities):
        if entities == (WatchlistLike,):
            return SimpleNamespace(filter=lambda *criteria: SimpleNamespace(first=lambda: stale))
        return real_query(*entities)

    monkeypatch.setattr(db_session, "query", query)
    result = WatchlistService.toggle_like(db_session, bob, category_id)
    assert result == {"liked": False, "likes_count": 0}


def test_private_category_cannot_be_liked(client, alice, bob, auth_headers):
    category_id = create_category(client, auth_headers(alice)).json()["id"]

    response = client.post(f"{BASE}/categories/{category_id}/like", headers=auth_headers(bob))
    assert response.status_code == 404


def test_public_listing_and_featured(client, alice, bob, auth_headers):
    quiet = create_category(client, auth_headers(alice), "Quiet", isPublic=True).json()["id"]
    loved = create_category(client, auth_headers(alice), "Loved", isPublic=True).json()["id"]
    create_category(client, auth_headers(alice), "Secret")
    client.post(f"{BASE}/categories/{loved}/like", headers=auth_headers(bob))
    add_item(client, auth_headers(alice), quiet, 550)
    add_item(client, auth_headers(alice), quiet, 603)

    page = client.get(f"{BASE}/public?sort=popular&limit=1").json()
    assert page["total"] == 2
    assert page["limit"] == 1
    assert [c["id"] for c in page["categories"]] == [loved]

    assert client.get(f"{BASE}/public?sort=random").status_code == 422

    featured = client.get(f"{BASE}/featured").json()
    assert [c["id"] for c in featured["mostLiked"]] == [loved]
    assert featured["mostPopulated"][0]["id"] == quiet
    assert {c["id"] for c in featured["newest"]} == {quiet, loved}

    public = client.get(f"{BASE}/user/{alice.id}/public").json()
    assert public["username"] == "alice"
    assert {w["name"] for w in public["watchlists"]} == {"Quiet", "Loved"}


# ==================== SHORTCUTS ====================

def test_quick_add_is_idempotent(client, db_session, alice, auth_headers):
    headers = auth_headers(alice)
    payload = {"tmdbMovieId": 550, "title": "Fight Club"}

    response = client.post(f"{BASE}/quick-add", json=payload, headers=headers)
    assert response.status_code == 201
    assert response.json()["message"] == 'Added to "My Watchlist"'
    assert response.json()["alreadyExists"] is False
    item_id = response.json()["watchlistItem"]["id"]

    response = client.post(f"{BASE}/quick-add", json=payload, headers=headers)
    assert response.status_code == 200
    assert response.json()["alreadyExists"] is True
    assert response.json()["watchlistItem"]["id"] == item_id

    assert db_session.query(WatchlistItem).filter(WatchlistItem.tmdb_movie_id == 550).count() == 1

    response = client.post(f"{BASE}/quick-add", json={"tmdbMovieId": 603}, headers=headers)
    assert response.status_code == 400


def test_default_watchlist_is_recreated(client, db_session, alice, auth_headers):
    db_session.query(WatchlistCategory).filter(WatchlistCategory.user_id == alice.id).delete()
    db_session.commit()

    response = client.get(f"{BASE}/default", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["name"] == "My Watchlist"
    assert response.json()["moviesCount"] == 0


def test_add_to_many(client, db_session, alice, bob, auth_headers):
    headers = auth_headers(alice)
    default_id = default_category_id(db_session, alice)
    scifi = create_category(client, headers).json()["id"]
    add_item(client, headers, default_id, 550)
    payload = {"tmdbMovieId": 550, "title": "Fight Club"}

    response = client.post(f"{BASE}/add-to-watchlists", json={**payload, "categoryIds": [default_id, scifi]}, headers=headers)
    assert response.status_code == 201
    assert response.json()["addedTo"] == [scifi]
    assert response.json()["alreadyIn"] == [default_id]
    assert len(response.json()["items"]) == 2

    bobs = default_category_id(db_session, bob)
    response = client.post(f"{BASE}/add-to-watchlists", json={"tmdbMovieId": 603, "title": "The Matrix", "categoryIds": [scifi, bobs]}, headers=headers)
    assert response.status_code == 403
    # Nothing was written
    assert db_session.query(WatchlistItem).filter(WatchlistItem.tmdb_movie_id == 603).count() == 0


def test_copy_movie(client, db_session, alice, bob, auth_headers):
    headers = auth_headers(alice)
    default_id = default_category_id(db_session, alice)
    scifi = create_category(client, headers).json()["id"]
    source = add_item(client, headers, default_id, 550, "Fight Club").json()["id"]
    client.put(f"{BASE}/categories/{default_id}/movies/{source}", json={"userNote": "Classic"}, headers=headers)

    response = client.post(f"{BASE}/copy-movie", json={"sourceItemId": source, "targetCategoryId": scifi}, headers=headers)
    assert response.status_code == 201
    assert response.json()["categoryId"] == scifi
    assert response.json()["userNote"] == "Classic"

    response = client.post(f"{BASE}/copy-movie", json={"sourceItemId": source, "targetCategoryId": scifi}, headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Movie already exists in target watchlist"

    response = client.post(
        f"{BASE}/copy-movie",
        json={"sourceItemId": source, "targetCategoryId": default_category_id(db_session, bob)},
        headers=headers,
    )
    assert response.status_code == 404


def test_movie_status_and_check(client, db_session, alice, auth_headers):
    headers = auth_headers(alice)
    default_id = default_category_id(db_session, alice)
    scifi = create_category(client, headers).json()["id"]

    assert client.get(f"{BASE}/status/550", headers=headers).json()["inWatchlist"] is False
    assert client.get(f"{BASE}/check-movie/550", headers=headers).json() == {
        "isInWatchlist": False,
        "categories": [],
    }

    add_item(client, headers, scifi, 550)
    body = client.get(f"{BASE}/status/550", headers=headers).json()
    assert body["inWatchlist"] is True
    assert body["inDefaultWatchlist"] is False
    assert [w["watchlistId"] for w in body["watchlists"]] == [scifi]

    add_item(client, headers, default_id, 550)
    body = client.get(f"{BASE}/status/550", headers=headers).json()
    assert body["inDefaultWatchlist"] is True

    body = client.get(f"{BASE}/check-movie/550", headers=headers).json()
    assert {c["id"] for c in body["categories"]} == {default_id, scifi}
