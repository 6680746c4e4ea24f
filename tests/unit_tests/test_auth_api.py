import pytest
import sqlalchemy

from smartwords.models.db.auth_session import AuthSession, TokenPurpose

SIGNUP = {"email": "ola@example.com", "password": "s3cret-pass", "data": {"timezone": "Europe/Warsaw"}}


async def signup(client) -> dict:
    response = await client.post("/api/auth/signup", json=SIGNUP)
    assert response.status_code == 201
    return response.json()


def bearer(tokens: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.mark.asyncio
async def test_signup_then_login_returns_working_tokens(client):
    tokens = await signup(client)
    assert tokens["email"] == SIGNUP["email"]

    login = await client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": SIGNUP["password"]})
    assert login.status_code == 200
    assert login.json()["user_id"] == tokens["user_id"]

    usage = await client.get("/api/usage/daily", headers=bearer(login.json()))
    assert usage.status_code == 200
    assert usage.json()["limit"] == 10


@pytest.mark.asyncio
async def test_signup_twice_is_a_conflict(client):
    await signup(client)

    response = await client.post("/api/auth/signup", json=SIGNUP)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_ALREADY_REGISTERED"


@pytest.mark.asyncio
async def test_login_with_wrong_password(client):
    await signup(client)

    response = await client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_exchange_rotates_refresh_token(client):
    tokens = await signup(client)
    payload = {"access_token": tokens["access_token"], "refresh_token": tokens["refresh_token"]}

    exchanged = await client.post("/api/auth/exchange", json=payload)
    reused = await client.post("/api/auth/exchange", json=payload)

    assert exchanged.status_code == 200
    assert exchanged.json()["refresh_token"] != tokens["refresh_token"]
    assert reused.status_code == 401
    assert reused.json()["error"]["code"] == "RECOVERY_TOKEN_INVALID"


@pytest.mark.asyncio
async def test_recover_is_silent_for_unknown_email_and_issues_token_otherwise(client, db_session):
    await signup(client)

    unknown = await client.post("/api/auth/recover", json={"email": "nobody@example.com"})
    known = await client.post("/api/auth/recover", json={"email": SIGNUP["email"]})

    assert unknown.json() == {"message": "RESET_EMAIL_SENT"}
    assert known.json() == {"message": "RESET_EMAIL_SENT"}
    purposes = (await db_session.execute(sqlalchemy.select(AuthSession.purpose))).scalars().all()
    assert purposes.count(TokenPurpose.RECOVERY.value) == 1


@pytest.mark.asyncio
async def test_reset_password_and_logout(client, db_session):
    tokens = await signup(client)
    await client.post("/api/auth/recover", json={"email": SIGNUP["email"]})

    reset = await client.post("/api/auth/reset-password", json={"password": "brand-new-pass"}, headers=bearer(tokens))
    assert reset.json() == {"message": "PASSWORD_UPDATED"}

    purposes = (await db_session.execute(sqlalchemy.select(AuthSession.purpose))).scalars().all()
    assert TokenPurpose.RECOVERY.value not in purposes

    old_login = await client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": SIGNUP["password"]})
    new_login = await client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "brand-new-pass"})
    assert old_login.status_code == 401
    assert new_login.status_code == 200

    logout = await client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=bearer(tokens))
    assert logout.json() == {"message": "LOGGED_OUT"}
    exchange = await client.post(
        "/api/auth/exchange", json={"access_token": tokens["access_token"], "refresh_token": tokens["refresh_token"]}
    )
    assert exchange.status_code == 401


@pytest.mark.asyncio
async def test_short_password_is_a_validation_error(client):
    response = await client.post("/api/auth/signup", json={**SIGNUP, "password": "short"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
