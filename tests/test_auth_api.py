"""HTTP-level tests for registration, two-step login and session lifecycle."""
from datetime import timedelta

from umurava.config import settings
from umurava.core.security import create_access_token, decode_access_token, decode_refresh_token
from umurava.repositories import user_repo
from umurava.services import otp_service

from conftest import DEFAULT_PASSWORD, bearer, refresh_cookie


def expired_access_for(token: str) -> str:
    claims = decode_access_token(token)
    return create_access_token(claims["sub"], claims["role"], expires_delta=timedelta(seconds=-1))


class TestRegister:
    def test_register_returns_access_token_and_refresh_cookie(self, client, register):
        response = register()

        assert response.status_code == 201
        data = response.json()
        assert set(data) == {"accessToken", "tokenType"}
        assert "password" not in response.text
        assert decode_access_token(data["accessToken"])["role"] == "user"

        cookie = refresh_cookie(response)
        assert decode_refresh_token(cookie)["tv"] == 1
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie
        assert f"max-age={settings.refresh_token_expire_days * 86400}" in set_cookie

    def test_registered_user_never_exposes_password_hash(self, client, register):
        token = register().json()["accessToken"]

        response = client.get("/users/me", headers=bearer(token))

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "a@b.com"
        assert body["firstName"] == "Ada"
        for hidden in ("passwordHash", "password_hash", "tokenVersion", "pendingOtpHash"):
            assert hidden not in body

    def test_email_is_case_normalized(self, client, register):
        assert register(email="Mixed@Example.COM").status_code == 201
        assert register(email="mixed@example.com").status_code == 400

    def test_duplicate_email_is_rejected(self, client, register):
        register()
        response = register()
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists."

    def test_validation_errors_are_enumerated(self, client):
        response = client.post(
            "/auth/register",
            json={"firstName": "A1", "lastName": "Lovelace", "email": "nope", "password": "short"},
        )

        assert response.status_code == 400
        errors = response.json()["error"]
        assert len(errors) == 3
        fields = {message.split(":")[0] for message in errors}
        assert fields == {"firstName", "email", "password"}

    def test_unknown_role_is_rejected(self, client, register):
        assert register(role="superuser").status_code == 400


class TestLogin:
    def test_login_sends_otp_and_issues_no_tokens(self, client, register, mailer):
        register()

        response = client.post("/auth/login", json={"email": "a@b.com", "password": DEFAULT_PASSWORD})

        assert response.status_code == 200
        assert response.json() == {"email": "a@b.com", "message": "Verify your email for the OTP"}
        assert settings.refresh_cookie_name not in response.cookies
        assert len(mailer.sent) == 1
        assert mailer.sent[0][0] == "a@b.com"

    def test_unknown_email_is_404(self, client):
        response = client.post("/auth/login", json={"email": "ghost@b.com", "password": DEFAULT_PASSWORD})
        assert response.status_code == 404

    def test_wrong_password_is_400(self, client, register, mailer):
        register()
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "Wrong1!pass"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid credentials."
        assert mailer.sent == []

    def test_mail_failure_aborts_login_and_drops_challenge(self, client, register, mailer, db):
        register()
        mailer.fail = True

        response = client.post("/auth/login", json={"email": "a@b.com", "password": DEFAULT_PASSWORD})

        assert response.status_code == 503
        user = user_repo.get_by_email(db, "a@b.com")
        assert user.pending_otp_hash is None


class TestVerifyOTP:
    def test_correct_code_returns_tokens(self, client, register, login):
        register()
        response = login()

        assert response.status_code == 200
        assert response.json()["accessToken"]
        assert refresh_cookie(response)

    def test_code_cannot_be_reused(self, client, register, login, mailer):
        register()
        login()
        code = mailer.last_code_for("a@b.com")

        response = client.post("/auth/verify-otp", json={"email": "a@b.com", "otp": code})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired OTP."

    def test_code_after_six_minutes_is_rejected(self, client, register, mailer, monkeypatch):
        register()
        client.post("/auth/login", json={"email": "a@b.com", "password": DEFAULT_PASSWORD})
        code = mailer.last_code_for("a@b.com")

        later = otp_service._now() + timedelta(minutes=6)
        monkeypatch.setattr(otp_service, "_now", lambda: later)
        response = client.post("/auth/verify-otp", json={"email": "a@b.com", "otp": code})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired OTP."

    def test_only_latest_code_verifies(self, client, register, mailer):
        register()
        client.post("/auth/login", json={"email": "a@b.com", "password": DEFAULT_PASSWORD})
        first = mailer.last_code_for("a@b.com")
        client.post("/auth/login", json={"email": "a@b.com", "password": DEFAULT_PASSWORD})
        second = mailer.last_code_for("a@b.com")

        if first != second:
            stale = client.post("/auth/verify-otp", json={"email": "a@b.com", "otp": first})
            assert stale.status_code == 400
        fresh = client.post("/auth/verify-otp", json={"email": "a@b.com", "otp": second})
        assert fresh.status_code == 200

    def test_unknown_user_is_404(self, client):
        response = client.post("/auth/verify-otp", json={"email": "ghost@b.com", "otp": "123456"})
        assert response.status_code == 404

    def test_malformed_code_is_validation_error(self, client):
        response = client.post("/auth/verify-otp", json={"email": "a@b.com", "otp": "12ab"})
        assert response.status_code == 400
        assert response.json()["error"][0].startswith("otp:")


class TestSessions:
    def test_missing_token_is_401(self, client):
        response = client.get("/users/me")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_expired_access_token_is_renewed_from_cookie(self, client, register):
        response = register()
        access = response.json()["accessToken"]

        renewed = client.get("/users/me", headers=bearer(expired_access_for(access)))

        assert renewed.status_code == 200
        header = renewed.headers["authorization"]
        assert header.startswith("Bearer ")
        assert decode_access_token(header.split(" ", 1)[1])["sub"] == decode_access_token(access)["sub"]

    def test_expired_access_without_cookie_is_401(self, client, register):
        access = register().json()["accessToken"]
        client.cookies.clear()

        response = client.get("/users/me", headers=bearer(expired_access_for(access)))

        assert response.status_code == 401

    def test_forbidden_after_renewal_still_returns_new_token(self, client, register):
        access = register().json()["accessToken"]

        response = client.get("/users", headers=bearer(expired_access_for(access)))

        assert response.status_code == 403
        header = response.headers["authorization"]
        assert header.startswith("Bearer ")
        renewed = header.split(" ", 1)[1]
        assert decode_access_token(renewed)["sub"] == decode_access_token(access)["sub"]
        assert client.get("/users/me", headers=bearer(renewed)).status_code == 200

    def test_forbidden_with_live_token_has_no_authorization_header(self, client, register):
        access = register().json()["accessToken"]

        response = client.get("/users", headers=bearer(access))

        assert response.status_code == 403
        assert "authorization" not in response.headers

    def test_change_password_revokes_old_refresh_token(self, client, register):
        response = register()
        access = response.json()["accessToken"]
        old_refresh = refresh_cookie(response)

        changed = client.post(
            "/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "Bb2@bbbb"},
            headers=bearer(access),
        )
        assert changed.status_code == 200
        assert decode_refresh_token(refresh_cookie(changed))["tv"] == 2

        client.cookies.clear()
        client.cookies.set(settings.refresh_cookie_name, old_refresh)
        stale = client.get("/users/me", headers=bearer(expired_access_for(access)))
        assert stale.status_code == 401

        # The access token minted before the change still works until it expires
        assert client.get("/users/me", headers=bearer(access)).status_code == 200

    def test_change_password_requires_current_password(self, client, register):
        access = register().json()["accessToken"]

        response = client.post(
            "/auth/change-password",
            json={"currentPassword": "Wrong1!pass", "newPassword": "Bb2@bbbb"},
            headers=bearer(access),
        )

        assert response.status_code == 400

    def test_new_password_is_used_for_login(self, client, register, login):
        access = register().json()["accessToken"]
        client.post(
            "/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "Bb2@bbbb"},
            headers=bearer(access),
        )

        old = client.post("/auth/login", json={"email": "a@b.com", "password": DEFAULT_PASSWORD})
        assert old.status_code == 400
        assert login(password="Bb2@bbbb").status_code == 200

    def test_logout_all_revokes_refresh_tokens(self, client, register):
        response = register()
        access = response.json()["accessToken"]
        old_refresh = refresh_cookie(response)

        out = client.post("/auth/logout-all", headers=bearer(access))
        assert out.status_code == 200

        client.cookies.set(settings.refresh_cookie_name, old_refresh)
        stale = client.get("/users/me", headers=bearer(expired_access_for(access)))
        assert stale.status_code == 401

    def test_logout_clears_cookie(self, client, register):
        register()
        response = client.post("/auth/logout")
        assert response.status_code == 200
        assert settings.refresh_cookie_name in response.headers["set-cookie"]
        assert 'max-age=0' in response.headers["set-cookie"].lower()

    def test_internal_faults_are_generic_500(self, client, register, monkeypatch):
        monkeypatch.setattr(settings, "access_token_secret", "")
        response = register()
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
