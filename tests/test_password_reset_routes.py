# tests/test_password_reset_routes.py
import re
from datetime import timedelta

from carmarket_admin.core.clock import utcnow
from carmarket_admin.core.security import generate_reset_token, hash_reset_token

FORGOT_URL = "/api/admin/forgot-password"
RESET_URL = "/api/admin/reset-password"
GENERIC_MESSAGE = "If an account exists with this email, a password reset link has been sent."
INVALID_TOKEN_BODY = {"valid": False, "message": "Invalid or expired reset token"}

TOKEN_IN_LINK = re.compile(r"/reset-password/([0-9a-f]{64})")


def token_from_mail(mail) -> str:
    return TOKEN_IN_LINK.search(mail["text"]).group(1)


async def make_pending(make_admin, attempts=0, expires_in=timedelta(hours=1)):
    raw = generate_reset_token()
    admin = await make_admin(
        reset_password_token_hash=hash_reset_token(raw),
        reset_password_expires_at=utcnow() + expires_in,
        reset_password_attempts=attempts,
        last_password_reset_request=utcnow(),
    )
    return admin, raw


# ---------------- forgot-password ----------------
async def test_forgot_password_sends_reset_link(client, make_admin, mailer, load_admin):
    await make_admin()
    response = await client.post(FORGOT_URL, json={"email": "Admin@Test.com"})

    assert response.status_code == 200
    assert response.json() == {"message": GENERIC_MESSAGE}

    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail["to"] == "admin@test.com"
    assert mail["subject"] == "Password Reset Request"
    raw = token_from_mail(mail)
    assert f"http://admin.test/reset-password/{raw}" in mail["text"]
    assert f"http://admin.test/reset-password/{raw}" in mail["html"]

    stored = await load_admin("admin@test.com")
    assert stored.reset_password_token_hash == hash_reset_token(raw)
    assert stored.reset_password_attempts == 0
    assert stored.reset_password_expires_at > utcnow()


async def test_forgot_password_unknown_email_looks_identical(client, mailer):
    response = await client.post(FORGOT_URL, json={"email": "nobody@test.com"})

    assert response.status_code == 200
    assert response.json() == {"message": GENERIC_MESSAGE}
    assert mailer.sent == []


async def test_forgot_password_cooldown_is_silent(client, make_admin, mailer, load_admin):
    await make_admin()
    await client.post(FORGOT_URL, json={"email": "admin@test.com"})
    first_hash = (await load_admin("admin@test.com")).reset_password_token_hash

    response = await client.post(FORGOT_URL, json={"email": "admin@test.com"})

    assert response.status_code == 200
    assert response.json() == {"message": GENERIC_MESSAGE}
    assert len(mailer.sent) == 1
    assert (await load_admin("admin@test.com")).reset_password_token_hash == first_hash


async def test_forgot_password_rejects_malformed_email(client):
    for payload in ({"email": "not-an-email"}, {"email": ""}, {}):
        response = await client.post(FORGOT_URL, json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "Please provide a valid email address"


async def test_forgot_password_mail_failure_withdraws_token(client, make_admin, mailer, load_admin):
    await make_admin()
    mailer.fail = True

    response = await client.post(FORGOT_URL, json={"email": "admin@test.com"})

    assert response.status_code == 200
    assert response.json() == {"message": GENERIC_MESSAGE}
    stored = await load_admin("admin@test.com")
    assert stored.reset_password_token_hash is None
    assert stored.reset_password_expires_at is None
    assert stored.last_password_reset_request is None

    # the failed attempt does not start a cooldown
    mailer.fail = False
    await client.post(FORGOT_URL, json={"email": "admin@test.com"})
    assert len(mailer.sent) == 1


# ---------------- GET reset-password/:token ----------------
async def test_valid_token_reports_email(client, make_admin, load_admin):
    _, raw = await make_pending(make_admin, attempts=2)

    response = await client.get(f"{RESET_URL}/{raw}")

    assert response.status_code == 200
    assert response.json() == {"valid": True, "email": "admin@test.com"}
    # validation spends an attempt
    assert (await load_admin("admin@test.com")).reset_password_attempts == 3


async def test_unknown_token_is_rejected(client):
    response = await client.get(f"{RESET_URL}/not-a-real-token")

    assert response.status_code == 400
    assert response.json() == INVALID_TOKEN_BODY


async def test_expired_token_is_rejected_and_cleared(client, make_admin, load_admin):
    _, raw = await make_pending(make_admin, expires_in=timedelta(minutes=-1))

    response = await client.get(f"{RESET_URL}/{raw}")

    assert response.status_code == 400
    assert response.json() == INVALID_TOKEN_BODY
    stored = await load_admin("admin@test.com")
    assert stored.reset_password_token_hash is None
    assert stored.reset_password_expires_at is None


async def test_exhausted_token_is_rejected_and_cleared(client, make_admin, load_admin):
    _, raw = await make_pending(make_admin, attempts=5)

    response = await client.get(f"{RESET_URL}/{raw}")

    assert response.status_code == 400
    assert response.json() == INVALID_TOKEN_BODY
    stored = await load_admin("admin@test.com")
    assert stored.reset_password_token_hash is None
    assert stored.reset_password_attempts == 0


# ---------------- POST reset-password ----------------
async def test_full_reset_flow(client, make_admin, mailer, load_admin):
    await make_admin()
    await client.post(FORGOT_URL, json={"email": "admin@test.com"})
    raw = token_from_mail(mailer.sent[0])

    check = await client.get(f"{RESET_URL}/{raw}")
    assert check.status_code == 200

    response = await client.post(RESET_URL, json={"token": raw, "newPassword": "brandnewpass1"})
    assert response.status_code == 200
    assert response.json() == {"message": "Password has been reset successfully"}

    stored = await load_admin("admin@test.com")
    assert stored.reset_password_token_hash is None
    assert stored.reset_password_expires_at is None
    assert stored.reset_password_attempts == 0

    new_login = await client.post("/api/admin/login", json={"email": "admin@test.com", "password": "brandnewpass1"})
    assert new_login.status_code == 200
    old_login = await client.post("/api/admin/login", json={"email": "admin@test.com", "password": "password123"})
    assert old_login.status_code == 401


async def test_reset_token_is_single_use(client, make_admin):
    _, raw = await make_pending(make_admin)

    first = await client.post(RESET_URL, json={"token": raw, "newPassword": "brandnewpass1"})
    second = await client.post(RESET_URL, json={"token": raw, "newPassword": "anotherpass12"})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["message"] == "Invalid or expired reset token"


async def test_reset_with_expired_token_fails(client, make_admin):
    _, raw = await make_pending(make_admin, expires_in=timedelta(seconds=-5))

    response = await client.post(RESET_URL, json={"token": raw, "newPassword": "brandnewpass1"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired reset token"


async def test_reset_rejects_short_password_without_spending_token(client, make_admin, load_admin):
    _, raw = await make_pending(make_admin)

    response = await client.post(RESET_URL, json={"token": raw, "newPassword": "short"})

    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at least 8 characters long"
    stored = await load_admin("admin@test.com")
    assert stored.reset_password_attempts == 0
    assert stored.reset_password_token_hash == hash_reset_token(raw)


async def test_reset_requires_token_and_password(client):
    for payload in ({"token": "abc"}, {"newPassword": "brandnewpass1"}, {}):
        response = await client.post(RESET_URL, json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "Token and new password are required"
