"""Test the admin auth gate in both modes."""

from __future__ import annotations

import asyncio
import logging
import time
from types import SimpleNamespace

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from fastapi.testclient import TestClient

from blog_api.auth import DEV_IDENTITY, AuthGate, AuthMode, CognitoConfig, CognitoVerifier
from blog_api.main import create_app

POOL_ID = "eu-central-1_TestPool"
CLIENT_ID = "test-client-id"
CONFIG = CognitoConfig(user_pool_id=POOL_ID, client_id=CLIENT_ID)


class StaticJWKClient:
    """Hands out one fixed public key, like PyJWKClient would after fetching the JWKS."""

    def __init__(self, public_key) -> None:
        self.public_key = public_key

    def get_signing_key_from_jwt(self, token: str):
        return SimpleNamespace(key=self.public_key)


class UnreachableJWKClient:
    def get_signing_key_from_jwt(self, token: str):
        raise jwt.PyJWKClientConnectionError("Fail to fetch data from the url")


@pytest.fixture(scope="module")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_token(private_key, **overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": "cognito-user-1",
        "iss": CONFIG.issuer,
        "client_id": CLIENT_ID,
        "token_use": "access",
        "email": "author@example.com",
        "cognito:groups": ["admin"],
        "iat": now,
        "exp": now + 300,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_key, algorithm="RS256")


@pytest.fixture()
def enforcing_client(fake_db, signing_key):
    gate = AuthGate(CONFIG, verifier=CognitoVerifier(CONFIG, jwk_client=StaticJWKClient(signing_key.public_key())))
    with TestClient(create_app(auth_gate=gate)) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Dev mode
# ---------------------------------------------------------------------------


def test_gate_without_config_is_disabled():
    assert AuthGate().mode is AuthMode.DISABLED
    assert AuthGate(CONFIG, verifier=CognitoVerifier(CONFIG, jwk_client=object())).mode is AuthMode.ENFORCING


def test_dev_mode_allows_create_post_without_header(client, fake_db):
    fake_db.push([{"id": 1, "title": "Test Post", "slug": "test-post", "status": "draft"}], command="INSERT")

    response = client.post("/api/posts", json={"title": "Test Post", "content": "Body", "category_id": 1})

    assert response.status_code == 201


def test_dev_mode_allows_comment_moderation(client, fake_db):
    fake_db.push([{"id": 1, "status": "approved"}], command="UPDATE")

    response = client.put("/api/comments/1/status", json={"status": "approved"})

    assert response.status_code not in (401, 403)


def test_dev_mode_attaches_fixed_identity_and_warns_once(caplog):
    gate = AuthGate()

    with caplog.at_level(logging.WARNING, logger="blog_api.auth"):
        first = asyncio.run(gate.authenticate(None))
        second = asyncio.run(gate.authenticate("Bearer whatever"))

    assert first == DEV_IDENTITY
    assert second.sub == "dev-admin-000"
    assert second.groups == ["admin"]
    warnings = [r for r in caplog.records if "Auth disabled" in r.getMessage()]
    assert len(warnings) == 1


def test_dev_identity_is_not_shared_between_requests():
    gate = AuthGate()
    identity = asyncio.run(gate.authenticate(None))
    identity.groups.append("mutated")

    assert asyncio.run(gate.authenticate(None)).groups == ["admin"]


# ---------------------------------------------------------------------------
# Enforcing mode
# ---------------------------------------------------------------------------


def test_config_derives_region_and_issuer():
    assert CONFIG.region_name == "eu-central-1"
    assert CONFIG.issuer == f"https://cognito-idp.eu-central-1.amazonaws.com/{POOL_ID}"
    assert CONFIG.jwks_url.endswith("/.well-known/jwks.json")


def test_missing_header_is_401(enforcing_client, fake_db):
    response = enforcing_client.get("/api/admin/stats")

    assert response.status_code == 401
    assert response.json() == {"error": "Authorization header is required"}
    assert fake_db.calls == []


def test_malformed_scheme_is_401(enforcing_client, fake_db):
    response = enforcing_client.get("/api/admin/stats", headers={"Authorization": "Token abc"})

    assert response.status_code == 401
    assert "Bearer" in response.json()["error"]


def test_token_signed_by_other_key_is_403(enforcing_client, fake_db):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    token = make_token(other_key)

    response = enforcing_client.get("/api/admin/posts", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid or expired token"}


def test_expired_token_is_403(enforcing_client, signing_key):
    token = make_token(signing_key, exp=int(time.time()) - 60)

    response = enforcing_client.get("/api/admin/posts", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_token_for_other_client_is_403(enforcing_client, signing_key):
    token = make_token(signing_key, client_id="someone-else")

    response = enforcing_client.get("/api/admin/posts", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_id_token_is_403(enforcing_client, signing_key):
    token = make_token(signing_key, token_use="id")

    response = enforcing_client.get("/api/admin/posts", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_valid_token_reaches_handler(enforcing_client, fake_db, signing_key):
    fake_db.push([{"id": 1, "title": "Draft", "status": "draft"}])
    token = make_token(signing_key)

    response = enforcing_client.get("/api/admin/posts", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()[0]["title"] == "Draft"


def test_valid_token_subject_used_as_post_author(enforcing_client, fake_db, signing_key):
    fake_db.push([{"id": 1}], command="INSERT")
    token = make_token(signing_key)

    response = enforcing_client.post(
        "/api/posts",
        headers={"Authorization": f"Bearer {token}"},
        json={"title": "Signed", "content": "Body", "category_id": 1},
    )

    assert response.status_code == 201
    assert fake_db.params_for("INSERT INTO posts")["author_sub"] == "cognito-user-1"


def test_category_creation_is_gated(enforcing_client, fake_db):
    response = enforcing_client.post("/api/categories", json={"name": "Homelab"})

    assert response.status_code == 401
    assert fake_db.calls == []


def test_public_routes_need_no_token(enforcing_client, fake_db):
    assert enforcing_client.get("/api/posts").status_code == 200
    assert enforcing_client.get("/api/categories").status_code == 200


def test_valid_token_claims_extracted(signing_key):
    gate = AuthGate(CONFIG, verifier=CognitoVerifier(CONFIG, jwk_client=StaticJWKClient(signing_key.public_key())))

    user = asyncio.run(gate.authenticate(f"Bearer {make_token(signing_key)}"))

    assert user.sub == "cognito-user-1"
    assert user.email == "author@example.com"
    assert user.groups == ["admin"]


def test_unreachable_provider_is_500():
    gate = AuthGate(CONFIG, verifier=CognitoVerifier(CONFIG, jwk_client=UnreachableJWKClient()))

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(gate.authenticate("Bearer abc.def.ghi"))

    assert excinfo.value.status_code == 500
