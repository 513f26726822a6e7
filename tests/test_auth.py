"""
Tests for routers/auth.py: verification service client, teacher license
tokens, and how the two combine per request.
"""

import json
from datetime import datetime, timezone, timedelta

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from elora.main import app
from elora.routers import auth as auth_router
from elora.routers.auth import (
    create_teacher_token, fetch_verification_status, redeem_invite_code, verify_teacher_token,
)
from elora.errors import UpstreamError, ValidationError
from elora.tutor.context import AuthContext

SECRET = "test-teacher-secret-0123456789abcdef"
BASE = "https://verify.example"


def transport_returning(status_code=200, json_body=None, content=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=json_body)
    return httpx.MockTransport(handler)


class TestVerificationClient:
    async def test_verified_teacher(self):
        seen = []
        transport = transport_returning(json_body={"verified": True, "email": "t@school.edu", "teacher": True}, seen=seen)
        status = await fetch_verification_status("tok-123", base_url=BASE, transport=transport)

        assert status == AuthContext(verified=True, email="t@school.edu", teacher_licensed=True)
        assert str(seen[0].url) == f"{BASE}/api/verification/status"
        assert seen[0].headers["authorization"] == "Bearer tok-123"

    async def test_teacher_role_counts_as_license(self):
        transport = transport_returning(json_body={"verified": True, "email": "a@b.c", "role": "Teacher"})
        status = await fetch_verification_status("tok", base_url=BASE, transport=transport)
        assert status.teacher_licensed is True

    async def test_verified_regular_user(self):
        transport = transport_returning(json_body={"verified": True, "email": "a@b.c", "role": "regular"})
        status = await fetch_verification_status("tok", base_url=BASE, transport=transport)
        assert status.verified is True
        assert status.teacher_licensed is False

    async def test_no_token_skips_call(self):
        seen = []
        status = await fetch_verification_status("", base_url=BASE, transport=transport_returning(seen=seen))
        assert status == AuthContext()
        assert seen == []

    @pytest.mark.parametrize("status_code", [401, 403, 500])
    async def test_error_status_means_unverified(self, status_code):
        transport = transport_returning(status_code, json_body={"verified": True})
        status = await fetch_verification_status("tok", base_url=BASE, transport=transport)
        assert status.verified is False

    async def test_bad_json_means_unverified(self):
        transport = transport_returning(content=b"<html>oops</html>")
        status = await fetch_verification_status("tok", base_url=BASE, transport=transport)
        assert status.verified is False

    async def test_unreachable_means_unverified(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        status = await fetch_verification_status("tok", base_url=BASE, transport=httpx.MockTransport(handler))
        assert status == AuthContext()


class TestTeacherToken:
    def test_round_trip(self):
        token = create_teacher_token("t@school.edu", secret=SECRET)
        payload = verify_teacher_token(token, secret=SECRET)
        assert payload["teacher"] is True
        assert payload["email"] == "t@school.edu"

    def test_wrong_secret_rejected(self):
        token = create_teacher_token("t@school.edu", secret=SECRET)
        assert verify_teacher_token(token, secret="another-secret-0123456789abcdefgh") is None

    def test_tampered_rejected(self):
        token = create_teacher_token("t@school.edu", secret=SECRET)
        assert verify_teacher_token(token[:-2] + "xx", secret=SECRET) is None

    def test_expired_rejected(self):
        token = create_teacher_token("t@school.edu", secret=SECRET, ttl_days=-1)
        assert verify_teacher_token(token, secret=SECRET) is None

    def test_non_teacher_payload_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode({"teacher": False, "exp": now + timedelta(days=1)}, SECRET, algorithm="HS256")
        assert verify_teacher_token(token, secret=SECRET) is None

    def test_missing_secret_rejects_everything(self):
        token = create_teacher_token("t@school.edu", secret=SECRET)
        assert verify_teacher_token(token, secret="") is None
        assert verify_teacher_token("", secret=SECRET) is None


class TestStatusEndpoint:
    @pytest.fixture
    def seen_tokens(self, monkeypatch):
        seen = []

        async def fake_fetch(token):
            seen.append(token)
            return AuthContext(verified=bool(token), email="s@x.y" if token else "")

        monkeypatch.setattr(auth_router, "fetch_verification_status", fake_fetch)
        monkeypatch.setattr(
            auth_router, "verify_teacher_token",
            lambda token: {"teacher": True} if token == "good-teacher-cookie" else None,
        )
        return seen

    def test_session_cookie_used(self, seen_tokens):
        client = TestClient(app)
        client.cookies.set("elora_session", "cookie-token")
        body = client.get("/api/verification/status").json()
        assert seen_tokens == ["cookie-token"]
        assert body == {"ok": True, "verified": True, "email": "s@x.y", "role": "regular", "teacher": False}

    def test_bearer_header_used(self, seen_tokens):
        client = TestClient(app)
        client.get("/api/verification/status", headers={"Authorization": "Bearer header-token"})
        assert seen_tokens == ["header-token"]

    def test_guest(self, seen_tokens):
        body = TestClient(app).get("/api/verification/status").json()
        assert body["verified"] is False
        assert body["role"] == "guest"

    def test_teacher_cookie_grants_license(self, seen_tokens):
        client = TestClient(app)
        client.cookies.set("elora_session", "cookie-token")
        client.cookies.set("elora_teacher", "good-teacher-cookie")
        body = client.get("/api/verification/status").json()
        assert body["teacher"] is True
        assert body["role"] == "teacher"

    def test_bad_teacher_cookie_ignored(self, seen_tokens):
        client = TestClient(app)
        client.cookies.set("elora_teacher", "forged")
        assert client.get("/api/verification/status").json()["teacher"] is False


class TestInviteRedemption:
    async def test_success(self):
        seen = []
        transport = transport_returning(json_body={"ok": True}, seen=seen)
        await redeem_invite_code("tok-123", "INVITE-42", base_url=BASE, transport=transport)

        assert str(seen[0].url) == f"{BASE}/api/teacher/redeem"
        assert seen[0].method == "POST"
        assert seen[0].headers["authorization"] == "Bearer tok-123"
        assert json.loads(seen[0].content) == {"code": "INVITE-42"}

    async def test_invalid_code_mapped(self):
        transport = transport_returning(400, json_body={"ok": False, "error": "invalid_code"})
        with pytest.raises(ValidationError) as exc:
            await redeem_invite_code("tok", "nope", base_url=BASE, transport=transport)
        assert exc.value.code == "invalid_invite"
        assert exc.value.status_code == 400

    async def test_invites_not_configured_mapped(self):
        transport = transport_returning(503, json_body={"ok": False, "error": "teacher_invites_not_configured"})
        with pytest.raises(UpstreamError) as exc:
            await redeem_invite_code("tok", "code", base_url=BASE, transport=transport)
        assert exc.value.code == "invite_not_configured"
        assert exc.value.status_code == 503

    async def test_ok_false_is_rejected(self):
        transport = transport_returning(200, json_body={"ok": False})
        with pytest.raises(ValidationError) as exc:
            await redeem_invite_code("tok", "code", base_url=BASE, transport=transport)
        assert exc.value.code == "invalid_invite"
        assert exc.value.status_code == 400

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        with pytest.raises(UpstreamError) as exc:
            await redeem_invite_code("tok", "code", base_url=BASE, transport=httpx.MockTransport(handler))
        assert exc.value.code == "backend_unreachable"
        assert exc.value.status_code == 502


class TestTeacherEndpoints:
    @pytest.fixture
    def backend(self, monkeypatch):
        """Verified session + recorded invite redemptions."""
        state = {"verified": True, "redeemed": [], "redeem_error": None}

        async def fake_fetch(token):
            if not token:
                return AuthContext()
            return AuthContext(verified=state["verified"], email="t@school.edu")

        async def fake_redeem(token, code):
            if state["redeem_error"]:
                raise state["redeem_error"]
            state["redeemed"].append((token, code))

        monkeypatch.setattr(auth_router, "fetch_verification_status", fake_fetch)
        monkeypatch.setattr(auth_router, "redeem_invite_code", fake_redeem)
        monkeypatch.setattr(auth_router, "TEACHER_COOKIE_SECRET", SECRET)
        return state

    def signed_in_client(self):
        client = TestClient(app)
        client.cookies.set("elora_session", "cookie-token")
        return client

    def test_activate_sets_signed_cookie(self, backend):
        client = self.signed_in_client()
        r = client.post("/api/teacher/activate", json={"code": " INVITE-42 "})

        assert r.status_code == 200
        assert r.json() == {"ok": True, "teacher": True}
        assert backend["redeemed"] == [("cookie-token", "INVITE-42")]
        payload = verify_teacher_token(r.cookies.get("elora_teacher"), secret=SECRET)
        assert payload["email"] == "t@school.edu"
        assert "httponly" in r.headers["set-cookie"].lower()

    def test_activated_cookie_grants_license(self, backend):
        client = self.signed_in_client()
        client.post("/api/teacher/activate", json={"code": "INVITE-42"})
        body = client.get("/api/verification/status").json()
        assert body["teacher"] is True
        assert body["role"] == "teacher"

    def test_unverified_cannot_activate(self, backend):
        backend["verified"] = False
        r = self.signed_in_client().post("/api/teacher/activate", json={"code": "INVITE-42"})
        assert r.status_code == 403
        assert r.json() == {"error": "Email verification required."}
        assert backend["redeemed"] == []

    def test_guest_cannot_activate(self, backend):
        r = TestClient(app).post("/api/teacher/activate", json={"code": "INVITE-42"})
        assert r.status_code == 403
        assert backend["redeemed"] == []

    @pytest.mark.parametrize("body", [{}, {"code": "   "}, None])
    def test_missing_code(self, backend, body):
        r = self.signed_in_client().post("/api/teacher/activate", json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Please enter your teacher invite code."}
        assert backend["redeemed"] == []

    def test_malformed_body(self, backend):
        r = self.signed_in_client().post("/api/teacher/activate", json={"code": ["a", "b"]})
        assert r.status_code == 400
        assert "error" in r.json()

    def test_rejected_invite_sets_no_cookie(self, backend):
        backend["redeem_error"] = ValidationError("invalid_invite")
        r = self.signed_in_client().post("/api/teacher/activate", json={"code": "nope"})
        assert r.status_code == 400
        assert r.json() == {"error": "That invite code is not valid."}
        assert "set-cookie" not in r.headers

    def test_missing_secret(self, backend, monkeypatch):
        monkeypatch.setattr(auth_router, "TEACHER_COOKIE_SECRET", "")
        r = self.signed_in_client().post("/api/teacher/activate", json={"code": "INVITE-42"})
        assert r.status_code == 503
        assert "set-cookie" not in r.headers
        assert backend["redeemed"] == []

    def test_clear_expires_cookie(self, backend):
        r = TestClient(app).post("/api/teacher/clear")
        assert r.status_code == 200
        assert r.json() == {"ok": True}
        assert "elora_teacher=" in r.headers["set-cookie"]
        assert "max-age=0" in r.headers["set-cookie"].lower()

    @pytest.mark.parametrize("path", ["/api/teacher/activate", "/api/teacher/clear"])
    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_post_only(self, backend, path, method):
        r = TestClient(app).request(method, path)
        assert r.status_code == 405
        assert r.headers["allow"] == "POST"
        assert r.json() == {"error": "Method not allowed"}
