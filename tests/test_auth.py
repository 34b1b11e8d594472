"""Tests for registration, login and account recovery."""

import pytest

from lastpiece.shared.utils import settings, verify_password


def register(client, **overrides):
    body = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "Ada@Mail.com",
        "password": "Password123!",
        "confirmPassword": "Password123!",
    }
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def login(client, email, password):
    return client.post("/api/auth/login", json={"email": email, "password": password})


class TestRegister:
    def test_register(self, client, seed):
        response = register(client)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Registration successful. You can now log in."
        user = body["data"]
        assert user["email"] == "ada@mail.com"
        assert user["role"] == "customer"
        assert user["emailVerified"] is True
        assert "password" not in user

        stored = seed.find("users", email="ada@mail.com")
        assert stored["password"] != "Password123!"
        assert verify_password("Password123!", stored["password"])

    def test_missing_fields(self, client):
        response = register(client, lastName=None)
        assert response.status_code == 400
        assert response.json()["message"] == "Please provide all required fields"

    def test_passwords_must_match(self, client):
        response = register(client, confirmPassword="Password124!")
        assert response.status_code == 400
        assert response.json()["message"] == "Passwords do not match"

    def test_password_policy(self, client):
        response = register(client, password="abc", confirmPassword="abc")
        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at least 6 characters"

    def test_invalid_email(self, client):
        assert register(client, email="not-an-email").status_code == 400

    def test_duplicate_email(self, client):
        register(client)
        response = register(client, email="ADA@mail.com")
        assert response.status_code == 409
        assert response.json()["message"] == "Email already registered"


class TestEmailVerification:
    @pytest.fixture(autouse=True)
    def require_verification(self, monkeypatch):
        monkeypatch.setattr(settings, "REQUIRE_EMAIL_VERIFICATION", True)

    def test_verify_then_login(self, client, mailer):
        response = register(client)
        assert response.json()["message"] == "Registration successful. Please verify your email."
        assert response.json()["data"]["emailVerified"] is False

        response = login(client, "ada@mail.com", "Password123!")
        assert response.status_code == 403
        assert response.json()["message"] == "Please verify your email before logging in"

        token = mailer.token_for("ada@mail.com")
        response = client.post("/api/auth/verify-email", json={"token": token})
        assert response.status_code == 200
        assert response.json()["data"]["emailVerified"] is True

        assert login(client, "ada@mail.com", "Password123!").status_code == 200

    def test_bad_token(self, client):
        response = client.post("/api/auth/verify-email", json={"token": "deadbeef"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired verification token"


class TestLogin:
    def test_login(self, client, seed, customer):
        response = login(client, customer["email"].upper(), customer["password"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == customer["id"]
        assert data["tokens"]["accessToken"]
        assert data["tokens"]["refreshToken"]
        assert seed.find("users", _id=customer["id"])["last_login"] is not None

        profile = client.get("/api/auth/profile",
                             headers={"Authorization": f"Bearer {data['tokens']['accessToken']}"})
        assert profile.status_code == 200

    def test_wrong_password(self, client, seed, customer):
        response = login(client, customer["email"], "wrong-password")
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"
        assert seed.find("users", _id=customer["id"])["login_attempts"] == 1

    def test_unknown_email(self, client):
        assert login(client, "nobody@mail.com", "Password123!").status_code == 401

    def test_missing_credentials(self, client):
        response = client.post("/api/auth/login", json={"email": "a@mail.com"})
        assert response.status_code == 400

    def test_lockout_after_repeated_failures(self, client, customer):
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            assert login(client, customer["email"], "wrong-password").status_code == 401
        response = login(client, customer["email"], customer["password"])
        assert response.status_code == 423

    def test_success_resets_attempts(self, client, seed, customer):
        login(client, customer["email"], "wrong-password")
        login(client, customer["email"], customer["password"])
        assert seed.find("users", _id=customer["id"])["login_attempts"] == 0

    def test_blocked_account(self, client, seed):
        blocked = seed.user(status="blocked")
        response = login(client, blocked["email"], blocked["password"])
        assert response.status_code == 403
        assert response.json()["message"] == "Your account has been blocked"

    def test_blocked_token_is_refused(self, client, seed):
        blocked = seed.user(status="blocked")
        assert client.get("/api/auth/profile", headers=blocked["headers"]).status_code == 403

    def test_bad_token(self, client):
        response = client.get("/api/auth/profile", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, token failed"


class TestRefresh:
    def test_refresh(self, client, customer):
        tokens = login(client, customer["email"], customer["password"]).json()["data"]["tokens"]
        response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert response.status_code == 200
        assert response.json()["data"]["accessToken"]

    def test_access_token_is_not_a_refresh_token(self, client, customer):
        tokens = login(client, customer["email"], customer["password"]).json()["data"]["tokens"]
        response = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
        assert response.status_code == 401

    def test_token_required(self, client):
        assert client.post("/api/auth/refresh", json={}).status_code == 400


class TestPasswordReset:
    def test_reset_flow(self, client, mailer, customer):
        response = client.post("/api/auth/forgot-password", json={"email": customer["email"]})
        assert response.status_code == 200

        token = mailer.token_for(customer["email"])
        body = {"token": token, "password": "NewPassword1!", "confirmPassword": "NewPassword1!"}
        assert client.post("/api/auth/reset-password", json=body).status_code == 200

        assert login(client, customer["email"], customer["password"]).status_code == 401
        assert login(client, customer["email"], "NewPassword1!").status_code == 200

        response = client.post("/api/auth/reset-password", json=body)
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token"

    def test_unknown_email(self, client):
        response = client.post("/api/auth/forgot-password", json={"email": "nobody@mail.com"})
        assert response.status_code == 404

    def test_reset_clears_lockout(self, client, mailer, customer):
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            login(client, customer["email"], "wrong-password")
        client.post("/api/auth/forgot-password", json={"email": customer["email"]})
        token = mailer.token_for(customer["email"])
        client.post("/api/auth/reset-password",
                    json={"token": token, "password": "NewPassword1!", "confirmPassword": "NewPassword1!"})
        assert login(client, customer["email"], "NewPassword1!").status_code == 200


class TestProfile:
    def test_get_profile(self, client, customer):
        response = client.get("/api/auth/profile", headers=customer["headers"])
        assert response.status_code == 200
        assert response.json()["data"]["email"] == customer["email"]

    def test_update_profile(self, client, customer):
        response = client.put("/api/auth/profile", json={
            "firstName": "Grace",
            "phone": "555-0199",
            "address": {"city": "Arlington", "country": "US"},
        }, headers=customer["headers"])
        assert response.status_code == 200
        user = response.json()["data"]
        assert user["firstName"] == "Grace"
        assert user["phone"] == "555-0199"
        assert user["address"]["city"] == "Arlington"
