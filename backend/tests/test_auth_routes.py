"""Tests for registration, login and session introspection."""

from datetime import date
from uuid import uuid4

from conftest import headers_for

from app.api.deps import create_access_token, decode_access_token
from app.policy import GuestActor, Role, UserActor


async def test_register_then_login(client):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Kiran", "usn": "1ab21cs010", "dateOfBirth": "2003-08-01", "branch": "CSE"},
    )
    assert resp.status_code == 201
    assert resp.json()["message"] == "User registered successfully!"

    resp = await client.post("/api/auth/login", json={"usn": "1AB21CS010", "dateOfBirth": "2003-08-01"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Kiran"
    assert body["role"] == "student"
    assert body["isSubscribed"] is False
    assert decode_access_token(body["token"])["role"] == Role.STUDENT


async def test_register_duplicate_usn(client, student):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Someone Else", "usn": student.usn.lower(), "dateOfBirth": "2002-01-01"},
    )
    assert resp.status_code == 400


async def test_register_missing_field_is_400(client):
    resp = await client.post("/api/auth/register", json={"name": "No USN", "dateOfBirth": "2002-01-01"})
    assert resp.status_code == 400
    assert "usn" in resp.json()["message"]


async def test_login_wrong_dob(client, student):
    resp = await client.post("/api/auth/login", json={"usn": student.usn, "dateOfBirth": "1999-12-31"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid Date of Birth."


async def test_login_unknown_usn(client):
    resp = await client.post("/api/auth/login", json={"usn": "NOPE", "dateOfBirth": "2003-05-17"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "USN not found. Please check your credentials."


async def test_teacher_login_by_name(client, teacher):
    resp = await client.post(
        "/api/auth/login",
        json={"name": teacher.name, "dateOfBirth": "1980-02-29", "loginType": "teacher"},
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "teacher"


async def test_teacher_login_unknown_name(client):
    resp = await client.post(
        "/api/auth/login",
        json={"name": "Nobody", "dateOfBirth": "1980-02-29", "loginType": "teacher"},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Teacher not found. Check Name."


async def test_builtin_admin_login(client):
    resp = await client.post("/api/auth/login", json={"usn": "admin", "dateOfBirth": "1990-01-01"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["role"] == "admin"
    assert body["isSubscribed"] is True
    assert decode_access_token(body["token"])["actor"] == GuestActor()

    me = await client.get("/api/auth/me", headers={"x-auth-token": body["token"]})
    assert me.status_code == 200
    assert "reset_leaderboard" in me.json()["capabilities"]


async def test_builtin_admin_wrong_dob_falls_through(client):
    resp = await client.post("/api/auth/login", json={"usn": "ADMIN", "dateOfBirth": "1990-01-02"})
    assert resp.status_code == 401


async def test_me_reflects_database_state(client, student):
    resp = await client.get("/api/auth/me", headers=headers_for(student))
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == student.name
    assert body["role"] == "student"
    assert "use_ai" not in body["capabilities"]
    assert "browse_notes" in body["capabilities"]


async def test_me_accepts_bearer_token(client, student):
    token = headers_for(student)["x-auth-token"]
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200


async def test_me_without_token(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["message"] == "No token, authorization denied."


async def test_me_with_bad_token(client):
    resp = await client.get("/api/auth/me", headers={"x-auth-token": "garbage"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token is not valid."


async def test_guest_token_without_admin_role_is_rejected(client):
    token = create_access_token(GuestActor(), "Admin", Role.STUDENT, False)
    resp = await client.get("/api/auth/me", headers={"x-auth-token": token})
    assert resp.status_code == 401


async def test_token_for_deleted_user_is_rejected(client):
    token = create_access_token(UserActor(uuid4()), "Ghost", Role.STUDENT, False)
    resp = await client.get("/api/auth/me", headers={"x-auth-token": token})
    assert resp.status_code == 401


async def test_token_role_claim_is_not_trusted(client, create_user):
    user = await create_user(usn="1AB21CS099", date_of_birth=date(2004, 1, 1))
    # Forged claim: student row, admin role in token
    token = create_access_token(UserActor(user.id), user.name, Role.ADMIN, True)
    resp = await client.get("/api/users/", headers={"x-auth-token": token})
    assert resp.status_code == 403
