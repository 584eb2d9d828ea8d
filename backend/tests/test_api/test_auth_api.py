"""
Tests for Auth API Endpoints
Registration, login, Google sign-in and the password reset flow.
"""
from datetime import timedelta
from urllib.parse import parse_qs, urlparse
import httpx
import pytest
from unittest.mock import AsyncMock, patch

from eartraining.config import settings
from eartraining.core.security import decode_token
from eartraining.models.password_reset import PasswordReset, utcnow
from eartraining.services.google_oauth_service import GoogleOAuthError, GoogleUserInfo


API = settings.API_V1_PREFIX


def register(client, email="Aluno@Example.com", password="secret123", name="  Aluno  "):
    return client.post(f"{API}/auth/register", json={
        "email": email,
        "password": password,
        "name": name
    })


# ==================== REGISTER / LOGIN ====================

class TestRegister:
    """Test POST /auth/register endpoint."""

    def test_register_success(self, client, db):
        response = register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Usuário criado com sucesso!"
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "aluno@example.com"
        assert data["user"]["name"] == "Aluno"
        assert data["user"]["is_google_user"] is False
        assert "password_hash" not in data["user"]

        payload = decode_token(data["token"])
        assert payload["sub"] == data["user"]["id"]
        assert db.users[data["user"]["id"]]["password_hash"].startswith("$2")

    def test_register_duplicate_email(self, client):
        assert register(client).status_code == 201

        response = register(client, email="aluno@example.com")

        assert response.status_code == 409
        assert response.json()["detail"] == "Usuário já existe com este email"

    def test_register_short_password(self, client):
        response = register(client, password="123")
        assert response.status_code == 400

    def test_register_invalid_email(self, client):
        response = register(client, email="not-an-email")
        assert response.status_code == 422

    def test_register_over_google_account(self, client):
        client.post(f"{API}/auth/google", json={
            "email": "aluno@example.com", "name": "Aluno", "google_id": "g-1"
        })

        response = register(client)

        assert response.status_code == 400
        assert "Google" in response.json()["detail"]


class TestLogin:
    """Test POST /auth/login endpoint."""

    def test_login_success(self, client):
        register(client)

        response = client.post(f"{API}/auth/login", json={
            "email": "ALUNO@example.com", "password": "secret123"
        })

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "aluno@example.com"
        assert decode_token(response.json()["token"])["email"] == "aluno@example.com"

    def test_login_wrong_password(self, client):
        register(client)

        response = client.post(f"{API}/auth/login", json={
            "email": "aluno@example.com", "password": "wrong-password"
        })

        assert response.status_code == 401
        assert response.json()["detail"] == "Email ou senha incorretos"

    def test_login_unknown_email(self, client):
        response = client.post(f"{API}/auth/login", json={
            "email": "nobody@example.com", "password": "secret123"
        })
        assert response.status_code == 401

    def test_login_google_only_account(self, client):
        client.post(f"{API}/auth/google", json={
            "email": "aluno@example.com", "name": "Aluno", "google_id": "g-1"
        })

        response = client.post(f"{API}/auth/login", json={
            "email": "aluno@example.com", "password": "secret123"
        })

        assert response.status_code == 400


# ==================== GOOGLE ====================

class TestGoogleLogin:
    """Test the Google sign-in endpoints."""

    def test_post_creates_user(self, client, db):
        response = client.post(f"{API}/auth/google", json={
            "email": "G@Example.com",
            "name": "Google User",
            "google_id": "g-1",
            "avatar": "https://example.com/a.png"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["is_google_user"] is True
        assert data["user"]["avatar"] == "https://example.com/a.png"
        assert decode_token(data["token"])["googleId"] == "g-1"
        assert len(db.users) == 1

    def test_post_links_existing_account(self, client, db):
        user_id = register(client).json()["user"]["id"]

        response = client.post(f"{API}/auth/google", json={
            "email": "aluno@example.com", "name": "Aluno", "google_id": "g-9"
        })

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user_id
        assert db.users[user_id]["google_id"] == "g-9"
        assert db.users[user_id]["password_hash"]

    def test_post_incomplete_profile(self, client):
        response = client.post(f"{API}/auth/google", json={"email": "g@example.com"})
        assert response.status_code == 422

    def test_redirect_to_consent_screen(self, client):
        response = client.get(f"{API}/auth/google", follow_redirects=False)

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        query = parse_qs(location.query)
        assert response.headers["location"].startswith(settings.GOOGLE_AUTH_URL)
        assert query["client_id"] == ["test-client-id"]
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"][0].endswith("/auth/google/callback")

    def test_callback_success(self, client, db, mock_google):
        exchange, userinfo = mock_google
        exchange.return_value = "google-access-token"
        userinfo.return_value = GoogleUserInfo(
            id="g-42", email="New@Example.com", name="Novo", picture="https://example.com/p.png"
        )

        response = client.get(
            f"{API}/auth/google/callback", params={"code": "abc"}, follow_redirects=False
        )

        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith(f"{settings.FRONTEND_URL}/auth/success?token=")
        token = parse_qs(urlparse(location).query)["token"][0]
        assert decode_token(token)["email"] == "new@example.com"
        exchange.assert_awaited_once_with("abc")
        assert len(db.users) == 1

    def test_callback_error_param(self, client, mock_google):
        response = client.get(
            f"{API}/auth/google/callback", params={"error": "access_denied"}, follow_redirects=False
        )

        assert response.status_code == 307
        assert response.headers["location"].startswith(f"{settings.FRONTEND_URL}/auth/login?error=")

    def test_callback_exchange_failure(self, client, mock_google):
        exchange, _ = mock_google
        exchange.side_effect = GoogleOAuthError("Erro ao trocar código por token")

        response = client.get(
            f"{API}/auth/google/callback", params={"code": "bad"}, follow_redirects=False
        )

        assert "/auth/login?error=" in response.headers["location"]

    def test_callback_malformed_profile(self, client, db, google_http):
        def google(request):
            if str(request.url) == settings.GOOGLE_TOKEN_URL:
                return httpx.Response(200, json={"access_token": "google-access-token"})
            return httpx.Response(200, json={"email": "semid@example.com"})

        google_http(google)

        response = client.get(
            f"{API}/auth/google/callback", params={"code": "abc"}, follow_redirects=False
        )

        assert response.status_code == 307
        assert response.headers["location"].startswith(f"{settings.FRONTEND_URL}/auth/login?error=")
        assert db.users == {}


# ==================== PASSWORD RESET ====================

class TestPasswordReset:
    """Test the forgot / verify / reset flow."""

    def test_unknown_email_gets_generic_answer(self, client, mock_email):
        response = client.post(f"{API}/auth/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 200
        assert "Se este email estiver cadastrado" in response.json()["message"]
        mock_email.assert_not_awaited()

    def test_full_reset_flow(self, client, db, mock_email):
        register(client)

        response = client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})
        assert response.status_code == 200
        mock_email.assert_awaited_once()
        email, token, name = mock_email.await_args.args
        assert email == "aluno@example.com"
        assert name == "Aluno"

        stored = next(iter(db.password_resets.values()))
        assert stored["token"] == token
        assert stored["ttl"] > 0

        response = client.get(f"{API}/auth/verify-reset-token", params={"token": token})
        assert response.status_code == 200
        assert response.json() == {"valid": True, "email": "aluno@example.com", "name": "Aluno"}

        response = client.post(f"{API}/auth/reset-password", json={
            "token": token, "new_password": "nova-senha"
        })
        assert response.status_code == 200

        login = client.post(f"{API}/auth/login", json={
            "email": "aluno@example.com", "password": "nova-senha"
        })
        assert login.status_code == 200

    def test_used_token_cannot_be_reused(self, client, mock_email):
        register(client)
        client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})
        token = mock_email.await_args.args[1]

        first = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "nova-senha"})
        second = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "outra-senha"})

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["detail"] == "Token inválido ou expirado"

    def test_token_spent_when_password_update_fails(self, client, db, mock_email):
        register(client)
        client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})
        token = mock_email.await_args.args[1]

        with patch.object(db, "update_user", new=AsyncMock(side_effect=RuntimeError("store down"))):
            failed = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "nova-senha"})
        retry = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "nova-senha"})

        assert failed.status_code == 500
        assert retry.status_code == 400
        login = client.post(f"{API}/auth/login", json={"email": "aluno@example.com", "password": "secret123"})
        assert login.status_code == 200

    def test_new_request_invalidates_previous_token(self, client, mock_email):
        register(client)
        client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})
        old_token = mock_email.await_args.args[1]
        client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})

        response = client.get(f"{API}/auth/verify-reset-token", params={"token": old_token})

        assert response.status_code == 400

    @pytest.mark.parametrize("token", ["does-not-exist", "expired"])
    def test_invalid_tokens(self, client, db, token):
        expired = PasswordReset(
            id="reset-1",
            email="aluno@example.com",
            token="expired",
            expires_at=utcnow() - timedelta(minutes=1)
        )
        db.password_resets[expired.id] = expired.model_dump(mode="json")

        response = client.get(f"{API}/auth/verify-reset-token", params={"token": token})

        assert response.status_code == 400
        assert response.json()["detail"] == "Token inválido ou expirado"

    def test_reset_short_password(self, client, mock_email):
        register(client)
        client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})
        token = mock_email.await_args.args[1]

        response = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "123"})

        assert response.status_code == 400

    def test_google_account_cannot_reset(self, client, mock_email):
        client.post(f"{API}/auth/google", json={
            "email": "g@example.com", "name": "G", "google_id": "g-1"
        })

        response = client.post(f"{API}/auth/forgot-password", json={"email": "g@example.com"})

        assert response.status_code == 400
        mock_email.assert_not_awaited()

    def test_email_failure(self, client, mock_email):
        register(client)
        mock_email.return_value = False

        response = client.post(f"{API}/auth/forgot-password", json={"email": "aluno@example.com"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Erro ao enviar email de recuperação"
