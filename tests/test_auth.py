from datetime import timedelta

from moviemonday.models.user import User
from moviemonday.models.watchlist import DEFAULT_CATEGORY_NAME, WatchlistCategory
from moviemonday.utils.dates import utcnow
from moviemonday.utils.security import create_access_token, hash_token, verify_password

from conftest import create_user


def register(client, username="alice", email="alice@example.com", password="secret1"):
    return client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def link_token(email, marker):
    return email["body"].split(marker)[1].split()[0]


def test_register_verify_login_flow(client, db_session, sent_emails):
    response = register(client)
    assert response.status_code == 201
    assert response.json()["user"]["isVerified"] is False
    assert response.json()["user"]["username"] == "alice"

    # Unverified accounts cannot log in
    response = client.post("/auth/login", json={"username": "alice", "password": "secret1"})
    assert response.status_code == 403
    assert response.json()["detail"]["needsVerification"] is True

    assert len(sent_emails) == 1
    assert sent_emails[0]["recipient"] == "alice@example.com"
    token = link_token(sent_emails[0], "http://frontend/verify-email/")

    response = client.get(f"/auth/verify-email/{token}")
    assert response.status_code == 200
    assert response.json()["message"] == "Email verified successfully"

    response = client.get(f"/auth/verify-email/{token}")
    assert response.status_code == 200
    assert response.json()["message"] == "Email already verified"

    response = client.post("/auth/login", json={"username": "alice", "password": "secret1"})
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["isVerified"] is True
    assert body["token"]
    assert response.cookies.get("token") == body["token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


def test_register_creates_default_watchlist(client, db_session):
    response = register(client)
    user_id = response.json()["user"]["id"]

    categories = db_session.query(WatchlistCategory).filter(WatchlistCategory.user_id == user_id).all()
    assert [c.name for c in categories] == [DEFAULT_CATEGORY_NAME]
    assert categories[0].slug.startswith(f"my-watchlist-{user_id}-")


def test_register_rejects_taken_username_and_email(client, db_session):
    create_user(db_session, username="alice", email="alice@example.com")

    response = register(client, username="alice", email="other@example.com")
    assert response.status_code == 409
    assert response.json()["detail"] == "Username already taken"

    response = register(client, username="bob", email="ALICE@example.com")
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


def test_register_validates_input(client, db_session):
    assert register(client, username="al").status_code == 422
    assert register(client, username="bad name!").status_code == 422
    assert register(client, password="123").status_code == 422
    assert register(client, email="not-an-email").status_code == 422


def test_verify_email_with_unknown_token(client, db_session):
    response = client.get("/auth/verify-email/not-a-token")
    assert response.status_code == 400


def test_verify_email_with_expired_token(client, db_session):
    register(client)
    user = db_session.query(User).filter(User.username == "alice").one()
    user.verification_token_expires = utcnow() - timedelta(days=1)
    token = user.verification_token
    db_session.commit()

    response = client.get(f"/auth/verify-email/{token}")
    assert response.status_code == 400


def test_resend_verification_issues_new_token(client, db_session, sent_emails):
    register(client)
    first = link_token(sent_emails[0], "verify-email/")

    response = client.post("/auth/resend-verification", json={"email": "alice@example.com"})
    assert response.status_code == 200
    assert len(sent_emails) == 2
    second = link_token(sent_emails[1], "verify-email/")
    assert second != first

    # Unknown addresses get the same answer and no email
    response = client.post("/auth/resend-verification", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert len(sent_emails) == 2


def test_login_accepts_email_and_rejects_bad_password(client, db_session):
    create_user(db_session, username="alice", email="alice@example.com")

    response = client.post("/auth/login", json={"username": "alice@example.com", "password": "Password123!"})
    assert response.status_code == 200

    response = client.post("/auth/login", json={"username": "alice", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"

    response = client.post("/auth/login", json={"username": "nobody", "password": "Password123!"})
    assert response.status_code == 401


def test_cookie_authenticates_and_logout_clears_it(client, db_session):
    create_user(db_session, username="alice")

    client.post("/auth/login", json={"username": "alice", "password": "Password123!"})
    assert client.get("/auth/me").status_code == 200

    response = client.post("/auth/logout")
    assert response.status_code == 200
    client.cookies.clear()
    assert client.get("/auth/me").status_code == 401


def test_token_failures(client, db_session, test_settings):
    user = create_user(db_session)

    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "No token provided"

    response = client.get("/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.json()["detail"] == "Token signature is invalid"

    expired = create_access_token(test_settings, {"user_id": user.id}, expires_delta=timedelta(seconds=-5))
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"

    ghost = create_access_token(test_settings, {"user_id": 9999})
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {ghost}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


def test_forgot_and_reset_password(client, db_session, sent_emails):
    user = create_user(db_session, username="alice", password="OldPass123!")

    response = client.post("/auth/forgot-password", json={"email": "alice@example.com"})
    assert response.status_code == 200
    raw_token = link_token(sent_emails[-1], "http://frontend/reset-password/")

    db_session.expire_all()
    stored = db_session.get(User, user.id)
    # Only the hash is stored
    assert stored.password_reset_token == hash_token(raw_token)

    response = client.post(f"/auth/reset-password/{raw_token}", json={"password": "NewPass123!"})
    assert response.status_code == 200

    db_session.expire_all()
    stored = db_session.get(User, user.id)
    assert verify_password("NewPass123!", stored.password_hash)
    assert stored.password_reset_token is None

    # Tokens are single use
    response = client.post(f"/auth/reset-password/{raw_token}", json={"password": "Another123!"})
    assert response.status_code == 400


def test_forgot_password_for_unknown_email_sends_nothing(client, db_session, sent_emails):
    response = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert sent_emails == []
