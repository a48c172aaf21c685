"""Auth API endpoint tests."""

from marketplace.api.rate_limit import limiter
from marketplace.config import Settings, get_settings
from marketplace.main import app
from marketplace.models.user import User

VALID_PASSWORD = "Abcdef1!"


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_unknown_route_uses_error_envelope(client):
    """Test unknown routes return the error envelope."""
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


# Registration


def test_register_user(client, outbox):
    """Test registration returns a sanitized, unverified user."""
    response = client.post(
        "/api/auth/register",
        json={
            "email": "a@x.com",
            "username": "alice",
            "password": VALID_PASSWORD,
            "location": "Lisbon",
        },
    )
    assert response.status_code == 201
    data = response.json()
    user = data["user"]
    assert user["email"] == "a@x.com"
    assert user["username"] == "alice"
    assert user["email_verified"] is False
    assert user["location"] == "Lisbon"
    assert "password_hash" not in user
    assert "verification_token" not in user
    assert "token" not in data

    # The token only travels through the dispatcher
    assert len(outbox.verifications) == 1
    assert outbox.verifications[0][:2] == ("a@x.com", "alice")


def test_register_reports_all_validation_errors(client, db):
    """Test every invalid field is reported in one response."""
    response = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "username": "a!", "password": "weak"},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    details = error["details"]
    assert "Invalid email format" in details
    assert "Username must be at least 3 characters" in details
    assert "Username can only contain letters, numbers, and underscores" in details
    assert "Password must be at least 8 characters" in details
    assert "Password must contain at least one uppercase letter" in details
    assert db.query(User).count() == 0


def test_register_missing_fields(client):
    """Test missing fields are validation errors, not pydantic 422s."""
    response = client.post("/api/auth/register", json={})
    assert response.status_code == 400
    details = response.json()["error"]["details"]
    assert "Email is required" in details
    assert "Username is required" in details
    assert "Password is required" in details


def test_register_malformed_body(client):
    """Test a body of the wrong type is reported in the error envelope."""
    response = client.post("/api/auth/register", json={"email": ["a@x.com"]})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_register_duplicate_email(client, registered_user):
    """Test registration with a taken email (any case) fails with 409."""
    response = client.post(
        "/api/auth/register",
        json={"email": "A@X.com", "username": "alice2", "password": VALID_PASSWORD},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_EXISTS"


def test_register_duplicate_username(client, registered_user):
    """Test registration with a taken username fails with 409."""
    response = client.post(
        "/api/auth/register",
        json={"email": "b@x.com", "username": "alice", "password": VALID_PASSWORD},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "USERNAME_EXISTS"


def test_register_succeeds_when_email_dispatch_fails(client, outbox, db):
    """Test a failed verification email does not undo registration."""
    outbox.fail = True
    response = client.post(
        "/api/auth/register",
        json={"email": "a@x.com", "username": "alice", "password": VALID_PASSWORD},
    )
    assert response.status_code == 201
    user = db.query(User).filter(User.email == "a@x.com").one()
    assert user.verification_token is not None


# Email verification


def test_verify_email_single_use(client, registered_user, db):
    """Test a verification token works once and then fails."""
    token = registered_user["verification_token"]

    response = client.get(f"/api/auth/verify-email/{token}")
    assert response.status_code == 200
    assert "verified" in response.json()["message"]

    user = db.query(User).filter(User.id == registered_user["id"]).one()
    assert user.email_verified is True
    assert user.verification_token is None
    assert user.verification_token_expires_at is None

    response = client.get(f"/api/auth/verify-email/{token}")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_verify_email_unknown_token(client):
    """Test an unknown verification token is rejected."""
    response = client.get("/api/auth/verify-email/not-a-real-token")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_verify_email_blank_token(client):
    """Test a whitespace-only token is reported as missing."""
    response = client.get("/api/auth/verify-email/%20")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_TOKEN"


# Resend verification


def test_resend_verification_unknown_email_is_generic(client, outbox):
    """Test resend answers the same for unknown emails."""
    response = client.post("/api/auth/resend-verification", json={"email": "nobody@x.com"})
    assert response.status_code == 200
    assert "If an unverified account exists" in response.json()["message"]
    assert outbox.verifications == []


def test_resend_verification_replaces_token(client, registered_user, outbox):
    """Test resend issues a new token and invalidates the old one."""
    old_token = registered_user["verification_token"]

    response = client.post("/api/auth/resend-verification", json={"email": "a@x.com"})
    assert response.status_code == 200
    assert "If an unverified account exists" in response.json()["message"]
    new_token = outbox.last_verification_token
    assert new_token != old_token

    assert client.get(f"/api/auth/verify-email/{old_token}").status_code == 400
    assert client.get(f"/api/auth/verify-email/{new_token}").status_code == 200


def test_resend_verification_already_verified(client, verified_user):
    """Test resend reveals that an account is already verified."""
    response = client.post("/api/auth/resend-verification", json={"email": "a@x.com"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ALREADY_VERIFIED"


def test_resend_verification_missing_email(client):
    """Test resend requires an email."""
    response = client.post("/api/auth/resend-verification", json={})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_EMAIL"


# Login


def test_login_before_verification(client, registered_user):
    """Test correct credentials on an unverified account get a distinct error."""
    response = client.post(
        "/api/auth/login", json={"email": "a@x.com", "password": VALID_PASSWORD}
    )
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "EMAIL_NOT_VERIFIED"
    assert error["message"] == "Please verify your email before logging in"


def test_login_after_verification(client, verified_user):
    """Test login returns a session token and sanitized user."""
    response = client.post(
        "/api/auth/login", json={"email": "a@x.com", "password": VALID_PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["email_verified"] is True
    assert "password_hash" not in data["user"]
    assert "passwordHash" not in data["user"]


def test_login_is_case_insensitive_on_email(client, verified_user):
    """Test login matches email regardless of case."""
    response = client.post(
        "/api/auth/login", json={"email": "A@X.COM", "password": VALID_PASSWORD}
    )
    assert response.status_code == 200


def test_login_failures_are_indistinguishable(client, verified_user):
    """Test unknown email and wrong password produce the same response."""
    unknown = client.post(
        "/api/auth/login", json={"email": "nobody@x.com", "password": VALID_PASSWORD}
    )
    wrong = client.post("/api/auth/login", json={"email": "a@x.com", "password": "Wrong123!"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert wrong.json()["error"]["message"] == "Invalid email or password"


def test_login_wrong_password_on_unverified_account(client, registered_user):
    """Test the unverified error is only shown after the password matched."""
    response = client.post("/api/auth/login", json={"email": "a@x.com", "password": "Wrong123!"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"


def test_login_missing_fields(client):
    """Test login requires both email and password."""
    response = client.post("/api/auth/login", json={"email": "a@x.com"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_CREDENTIALS"


def test_login_without_signing_secret(client, verified_user):
    """Test a missing JWT secret is a server configuration error."""
    app.dependency_overrides[get_settings] = lambda: Settings(jwt_secret=None)
    response = client.post(
        "/api/auth/login", json={"email": "a@x.com", "password": VALID_PASSWORD}
    )
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"


def test_login_rate_limited(client):
    """Test repeated login attempts are throttled."""
    limiter.enabled = True
    limiter.reset()
    try:
        statuses = [
            client.post(
                "/api/auth/login", json={"email": "a@x.com", "password": "Wrong123!"}
            ).status_code
            for _ in range(6)
        ]
    finally:
        limiter.enabled = False
        limiter.reset()

    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429


# Current user


def test_get_current_user(client, auth_headers):
    """Test getting current user info with a session token."""
    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "a@x.com"
    assert "password_hash" not in response.json()


def test_get_current_user_without_token(client):
    """Test the session token is required."""
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "NO_TOKEN"


def test_get_current_user_with_invalid_token(client):
    """Test a garbage session token is rejected."""
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_SESSION"


# Password reset


def test_request_password_reset_unknown_email(client, outbox, db):
    """Test reset for an unknown email is generic and sends nothing."""
    response = client.post("/api/auth/reset-password", json={"email": "nonexistent@x.com"})
    assert response.status_code == 200
    assert "If an account exists" in response.json()["message"]
    assert outbox.resets == []
    assert db.query(User).count() == 0


def test_request_password_reset_unverified_account(client, registered_user, outbox):
    """Test unverified accounts get the generic answer and no email."""
    response = client.post("/api/auth/reset-password", json={"email": "a@x.com"})
    assert response.status_code == 200
    assert "If an account exists" in response.json()["message"]
    assert outbox.resets == []


def test_request_password_reset_missing_email(client):
    """Test reset request requires an email."""
    response = client.post("/api/auth/reset-password", json={})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_EMAIL"


def test_request_password_reset_verified_account(client, verified_user, outbox, db):
    """Test a verified account gets a reset token by email."""
    response = client.post("/api/auth/reset-password", json={"email": "a@x.com"})
    assert response.status_code == 200
    assert "If an account exists" in response.json()["message"]
    assert len(outbox.resets) == 1

    user = db.query(User).filter(User.email == "a@x.com").one()
    assert user.reset_token == outbox.last_reset_token
    assert user.reset_token_expires_at is not None


def test_complete_password_reset(client, verified_user, outbox, db):
    """Test a reset token sets the new password and is then cleared."""
    client.post("/api/auth/reset-password", json={"email": "a@x.com"})
    token = outbox.last_reset_token

    response = client.post(f"/api/auth/reset-password/{token}", json={"password": "NewPass2@"})
    assert response.status_code == 200
    assert "Password reset successful" in response.json()["message"]

    user = db.query(User).filter(User.email == "a@x.com").one()
    assert user.reset_token is None
    assert user.reset_token_expires_at is None

    old = client.post("/api/auth/login", json={"email": "a@x.com", "password": VALID_PASSWORD})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": "a@x.com", "password": "NewPass2@"})
    assert new.status_code == 200

    # Single use
    again = client.post(f"/api/auth/reset-password/{token}", json={"password": "Another3#"})
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "INVALID_TOKEN"


def test_complete_password_reset_weak_password(client, verified_user, outbox):
    """Test a weak new password lists each failed rule."""
    client.post("/api/auth/reset-password", json={"email": "a@x.com"})
    token = outbox.last_reset_token

    response = client.post(f"/api/auth/reset-password/{token}", json={"password": "weak"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "WEAK_PASSWORD"
    assert "Password must contain at least one uppercase letter" in error["details"]
    assert "Password must contain at least one number" in error["details"]


def test_complete_password_reset_missing_password(client):
    """Test the new password is required."""
    response = client.post("/api/auth/reset-password/sometoken", json={})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_PASSWORD"


def test_complete_password_reset_unknown_token(client):
    """Test an unknown reset token is rejected."""
    response = client.post("/api/auth/reset-password/unknown", json={"password": "NewPass2@"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TOKEN"
