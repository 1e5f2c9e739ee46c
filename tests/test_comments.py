from datetime import timedelta

import pytest

from moviemonday.models.comment import Comment, CommentSection, CommentVote
from moviemonday.services.comment_service import CommentService
from moviemonday.utils.dates import utcnow

MOVIE_THREAD = "/api/comments/content/movie/550"
TEXT = "What a great movie night pick"


@pytest.fixture
def alice(user_factory):
    return user_factory("alice")


@pytest.fixture
def bob(user_factory):
    return user_factory("bob")


def post(client, headers, content=TEXT, url=MOVIE_THREAD, parent=None):
    payload = {"content": content}
    if parent is not None:
        payload["parentCommentId"] = parent
    return client.post(url, json=payload, headers=headers)


# ==================== POSTING ====================

def test_post_and_list_comment(client, alice, auth_headers):
    response = post(client, auth_headers(alice))
    assert response.status_code == 201
    comment = response.json()
    assert comment["content"] == TEXT
    assert comment["depth"] == 0
    assert comment["author"]["username"] == "alice"

    page = client.get(MOVIE_THREAD).json()
    assert page["totalComments"] == 1
    assert [c["id"] for c in page["comments"]] == [comment["id"]]
    assert page["comments"][0]["replies"] == []
    assert page["sort"] == "top"


def test_empty_thread(client, db_session):
    page = client.get("/api/comments/content/movie/603").json()
    assert page == {
        "comments": [],
        "totalComments": 0,
        "hasMore": False,
        "currentPage": 1,
        "totalPages": 0,
        "sort": "top",
    }
    # Reading never creates a section
    assert db_session.query(CommentSection).count() == 0


def test_content_length_limits(client, alice, auth_headers):
    response = post(client, auth_headers(alice), content="too short")
    assert response.status_code == 400
    assert response.json()["detail"] == "Comment must be at least 10 characters long"

    response = post(client, auth_headers(alice), content="x" * 1001)
    assert response.status_code == 400
    assert response.json()["detail"] == "Comment cannot exceed 1000 characters"


def test_unknown_content_type(client, alice, auth_headers):
    response = post(client, auth_headers(alice), url="/api/comments/content/podcast/1")
    assert response.status_code == 400
    assert response.json()["detail"] == "Valid content type and id are required"

    assert client.get("/api/comments/content/movie/0").status_code == 400


def test_new_accounts_cannot_comment(client, app, alice, auth_headers):
    app.state.settings.COMMENT_MIN_ACCOUNT_AGE_HOURS = 24

    response = post(client, auth_headers(alice))
    assert response.status_code == 403


def test_posting_requires_login(client, db_session):
    assert post(client, {}).status_code == 401


# ==================== REPLIES ====================

def test_replies_and_preview(client, alice, bob, auth_headers):
    parent = post(client, auth_headers(alice)).json()["id"]
    for n in range(4):
        response = post(client, auth_headers(bob), content=f"Reply number {n} here", parent=parent)
        assert response.status_code == 201
        assert response.json()["depth"] == 1

    thread = client.get(MOVIE_THREAD).json()["comments"][0]
    assert thread["replyCount"] == 4
    assert len(thread["replies"]) == 3
    assert thread["hasMoreReplies"] is True

    replies = client.get(f"/api/comments/{parent}/replies").json()
    assert replies["totalReplies"] == 4
    assert [r["content"] for r in replies["replies"]] == [f"Reply number {n} here" for n in range(4)]


def test_reply_depth_is_limited(client, app, alice, bob, auth_headers):
    app.state.settings.COMMENT_MAX_DEPTH = 1
    root = post(client, auth_headers(alice)).json()["id"]
    reply = post(client, auth_headers(bob), parent=root).json()["id"]

    response = post(client, auth_headers(alice), parent=reply)
    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum reply depth exceeded"


def test_reply_to_missing_parent(client, alice, auth_headers):
    post(client, auth_headers(alice))

    response = post(client, auth_headers(alice), parent=9999)
    assert response.status_code == 404


# ==================== EDIT / DELETE ====================

def test_edit_own_comment_within_window(client, db_session, alice, bob, auth_headers):
    comment_id = post(client, auth_headers(alice)).json()["id"]

    response = client.put(f"/api/comments/{comment_id}", json={"content": "Changed my mind entirely"}, headers=auth_headers(bob))
    assert response.status_code == 403

    response = client.put(f"/api/comments/{comment_id}", json={"content": "Changed my mind entirely"}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["isEdited"] is True
    assert response.json()["editedAt"] is not None

    db_session.query(Comment).filter(Comment.id == comment_id).update({"created_at": utcnow() - timedelta(hours=25)})
    db_session.commit()

    response = client.put(f"/api/comments/{comment_id}", json={"content": "Too late for this edit"}, headers=auth_headers(alice))
    assert response.status_code == 403


def test_soft_delete(client, db_session, alice, bob, auth_headers):
    parent = post(client, auth_headers(alice)).json()["id"]
    reply = post(client, auth_headers(bob), parent=parent).json()["id"]

    assert client.delete(f"/api/comments/{parent}", headers=auth_headers(bob)).status_code == 403
    assert client.delete(f"/api/comments/{parent}", headers=auth_headers(alice)).status_code == 200

    db_session.expire_all()
    stored = db_session.get(Comment, parent)
    assert stored.is_deleted is True
    assert stored.content == "[deleted]"
    assert db_session.get(Comment, reply).parent_comment_id == parent

    page = client.get(MOVIE_THREAD).json()
    assert page["comments"] == []
    assert page["totalComments"] == 1

    assert client.delete(f"/api/comments/{parent}", headers=auth_headers(alice)).status_code == 404


# ==================== VOTES ====================

def test_vote_add_flip_and_remove(client, alice, bob, auth_headers):
    comment_id = post(client, auth_headers(alice)).json()["id"]
    url = f"/api/comments/{comment_id}/vote"

    body = client.post(url, json={"voteType": "upvote"}, headers=auth_headers(bob)).json()
    assert body == {"message": "Vote added", "upvotes": 1, "downvotes": 0, "voteScore": 1, "userVote": "upvote"}

    body = client.post(url, json={"voteType": "downvote"}, headers=auth_headers(bob)).json()
    assert body == {"message": "Vote changed", "upvotes": 0, "downvotes": 1, "voteScore": -1, "userVote": "downvote"}

    body = client.post(url, json={"voteType": "downvote"}, headers=auth_headers(bob)).json()
    assert body == {"message": "Vote removed", "upvotes": 0, "downvotes": 0, "voteScore": 0, "userVote": None}

    client.post(url, json={"voteType": "upvote"}, headers=auth_headers(bob))
    thread = client.get(MOVIE_THREAD, headers=auth_headers(bob)).json()["comments"][0]
    assert thread["userVote"] == "upvote"

    body = client.delete(url, headers=auth_headers(bob)).json()
    assert body["voteScore"] == 0
    assert client.delete(url, headers=auth_headers(bob)).status_code == 404


def test_removing_an_already_removed_vote_keeps_counts(client, db_session, alice, bob, auth_headers):
    comment_id = post(client, auth_headers(alice)).json()["id"]
    url = f"/api/comments/{comment_id}/vote"
    client.post(url, json={"voteType": "upvote"}, headers=auth_headers(bob))
    stale = db_session.query(CommentVote).one()

    assert client.delete(url, headers=auth_headers(bob)).json()["upvotes"] == 0

    # A second removal working from the row it read earlier changes nothing
    assert CommentService._delete_vote(db_session, stale) is False
    db_session.commit()
    db_session.expire_all()
    comment = db_session.get(Comment, comment_id)
    assert (comment.upvotes, comment.downvotes, comment.vote_score) == (0, 0, 0)


def test_cannot_vote_on_own_comment(client, alice, auth_headers):
    comment_id = post(client, auth_headers(alice)).json()["id"]

    response = client.post(f"/api/comments/{comment_id}/vote", json={"voteType": "upvote"}, headers=auth_headers(alice))
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot vote on your own comment"

    response = client.post(f"/api/comments/{comment_id}/vote", json={"voteType": "sideways"}, headers=auth_headers(alice))
    assert response.status_code == 422


def test_sort_orders(client, user_factory, alice, bob, auth_headers):
    carol = user_factory("carol")
    quiet = post(client, auth_headers(alice), content="A quiet little comment").json()["id"]
    loved = post(client, auth_headers(alice), content="Everybody loves this one").json()["id"]
    split = post(client, auth_headers(alice), content="This one splits the room").json()["id"]

    client.post(f"/api/comments/{loved}/vote", json={"voteType": "upvote"}, headers=auth_headers(bob))
    client.post(f"/api/comments/{loved}/vote", json={"voteType": "upvote"}, headers=auth_headers(carol))
    client.post(f"/api/comments/{split}/vote", json={"voteType": "upvote"}, headers=auth_headers(bob))
    client.post(f"/api/comments/{split}/vote", json={"voteType": "downvote"}, headers=auth_headers(carol))

    top = [c["id"] for c in client.get(f"{MOVIE_THREAD}?sort=top").json()["comments"]]
    assert top[0] == loved

    new = [c["id"] for c in client.get(f"{MOVIE_THREAD}?sort=new").json()["comments"]]
    assert new == [split, loved, quiet]

    controversial = [c["id"] for c in client.get(f"{MOVIE_THREAD}?sort=controversial").json()["comments"]]
    assert controversial[0] == split


# ==================== REPORTS ====================

def test_report_once(client, alice, bob, auth_headers):
    comment_id = post(client, auth_headers(alice)).json()["id"]
    url = f"/api/comments/{comment_id}/report"

    response = client.post(url, json={"reason": "spam"}, headers=auth_headers(bob))
    assert response.status_code == 201

    response = client.post(url, json={"reason": "other", "description": "Again"}, headers=auth_headers(bob))
    assert response.status_code == 400
    assert response.json()["detail"] == "You have already reported this comment"

    assert client.post(url, json={"reason": "boring"}, headers=auth_headers(bob)).status_code == 422


# ==================== TARGETS ====================

def test_private_watchlist_threads_are_owner_only(client, db_session, alice, bob, auth_headers):
    category_id = client.post(
        "/api/watchlists/categories", json={"name": "Secret"}, headers=auth_headers(alice)
    ).json()["id"]
    url = f"/api/comments/content/watchlist/{category_id}"

    assert post(client, auth_headers(alice), url=url).status_code == 201
    assert post(client, auth_headers(bob), url=url).status_code == 403
    assert client.get(url, headers=auth_headers(bob)).status_code == 403
    assert client.get(url, headers=auth_headers(alice)).json()["totalComments"] == 1

    assert client.get("/api/comments/content/watchlist/9999").status_code == 404


def test_movie_monday_threads(client, alice, group_factory, auth_headers):
    group = group_factory(alice)
    mm_id = client.post(
        "/api/movie-monday/create", json={"date": "2024-03-04", "groupId": group.id}, headers=auth_headers(alice)
    ).json()["id"]

    assert post(client, auth_headers(alice), url=f"/api/comments/content/moviemonday/{mm_id}").status_code == 201
    assert post(client, auth_headers(alice), url="/api/comments/content/moviemonday/9999").status_code == 404
