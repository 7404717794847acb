"""
End-to-end tests for the MoodAI API endpoints.

These tests verify the complete HTTP API functionality including accounts,
mood-aware chat, recommendations, mood history, payments and Server-Sent
Events streaming.
"""

import asyncio
import contextlib
import json
import socket
import threading
import time

import httpx
import pytest
import uvicorn
from fastapi.testclient import TestClient
from httpx_sse import aconnect_sse
from typer.testing import CliRunner

from moodai.auth import TOKEN_COOKIE, create_token, decode_token
from moodai.cli import app as cli_app
from moodai.classifier import MoodClassifier
from moodai.config import Settings
from moodai.models import MoodLabel
from moodai.payments import PaymentGateway, sign
from moodai.responses import CANNED_RESPONSES
from moodai.server import create_app
from moodai.store import UserStore

from .conftest import JWT_SECRET, RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET

PASSWORD = "secret123"

runner = CliRunner()


def register(client: TestClient, username: str = "alice") -> dict:
    """Sign up and log in, leaving the session cookie on the client."""
    email = f"{username}@example.com"
    signup = client.post(
        "/api/auth/signup", json={"username": username, "email": email, "password": PASSWORD}
    )
    assert signup.status_code == 201, signup.text

    login = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert login.status_code == 200, login.text
    assert TOKEN_COOKIE in login.cookies
    return login.json()["user"]


def razorpay_orders(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(
        200, json={"id": "order_1", "amount": body["amount"], "currency": body["currency"]}
    )


# MARK: - Sync


class TestAPISync:
    """Integration tests covering the complete application flow using HTTP
    synchronous request/response flow."""

    @pytest.fixture(autouse=True)
    def _app(self, settings, notifier, outbox, composer):
        """Set up a fresh app with new stores for each test."""
        self.settings = settings
        self.outbox = outbox
        self.users = UserStore()
        self.payments = PaymentGateway(
            RAZORPAY_KEY_ID,
            RAZORPAY_KEY_SECRET,
            transport=httpx.MockTransport(razorpay_orders),
        )
        self.app = create_app(
            settings,
            users=self.users,
            notifier=notifier,
            composer=composer,
            payments=self.payments,
        )

    def test_health(self):
        with TestClient(self.app) as client:
            response = client.get("/health")
            assert response.status_code == 200
            assert response.json()["status"] == "ok"

    def test_account_workflow(self):
        """Test signup -> welcome email -> login -> me -> logout."""
        with TestClient(self.app) as client:
            user = register(client)
            assert user["username"] == "alice"
            assert "password" not in json.dumps(user)

            assert len(self.outbox) == 1
            assert self.outbox[0]["To"] == "alice@example.com"

            me = client.get("/api/auth/me")
            assert me.status_code == 200
            assert me.json()["user"]["id"] == user["id"]
            assert me.json()["consultations"] == []

            assert client.post("/api/auth/logout").status_code == 200
            assert client.get("/api/auth/me").status_code == 401

    def test_signup_validation(self):
        with TestClient(self.app) as client:
            register(client)

            duplicate = client.post(
                "/api/auth/signup",
                json={"username": "alice", "email": "other@example.com", "password": PASSWORD},
            )
            assert duplicate.status_code == 400
            assert "Username" in duplicate.json()["detail"]

            short = client.post(
                "/api/auth/signup",
                json={"username": "bob", "email": "bob@example.com", "password": "123"},
            )
            assert short.status_code == 422

            bad_email = client.post(
                "/api/auth/signup",
                json={"username": "bob", "email": "not-an-email", "password": PASSWORD},
            )
            assert bad_email.status_code == 422

    def test_login_rejects_bad_credentials(self):
        with TestClient(self.app) as client:
            register(client)
            wrong = client.post(
                "/api/auth/login", json={"email": "alice@example.com", "password": "nope123"}
            )
            assert wrong.status_code == 401
            unknown = client.post(
                "/api/auth/login", json={"email": "zed@example.com", "password": PASSWORD}
            )
            assert unknown.status_code == 401

    def test_protected_routes_need_session(self):
        with TestClient(self.app) as client:
            assert client.post("/api/chat", json={"message": "hi"}).status_code == 401
            assert client.get("/api/mood-history").status_code == 401

            client.cookies.set(TOKEN_COOKIE, "garbage")
            response = client.get("/api/mood-history")
            assert response.status_code == 401
            assert response.json()["detail"] == "Invalid or expired token"

    def test_token_for_deleted_user(self):
        with TestClient(self.app) as client:
            client.cookies.set(TOKEN_COOKIE, create_token("ghost", JWT_SECRET))
            assert client.get("/api/auth/me").status_code == 404

    def test_chat_workflow(self):
        """Test chat -> recommendations -> history -> weekly report."""
        with TestClient(self.app) as client:
            register(client)

            # 1. A burnout message is classified and answered
            response = client.post("/api/chat", json={"message": "I'm so burnt out but staying positive!"})
            assert response.status_code == 200
            result = response.json()
            assert result["mood"] == "Burnt Out"
            assert result["color"] == "#ef4444"
            assert result["score"] == 10
            assert result["response"] in CANNED_RESPONSES[MoodLabel.BURNT_OUT]
            assert 0 < len(result["suggested_actions"]) <= 5

            # 2. Suggestions are the ones tagged for the mood
            tagged = client.get("/api/recommendations", params={"mood": "burnt out"}).json()
            tagged_content = {r["content"] for r in tagged}
            assert {a["content"] for a in result["suggested_actions"]} <= tagged_content

            # 3. A second message
            second = client.post("/api/chat", json={"message": "I'm nervous about tomorrow"})
            assert second.json()["mood"] == "Anxious"

            # 4. History holds both as chart points
            history = client.get("/api/mood-history").json()
            assert [p["mood"] for p in history] == ["Burnt Out", "Anxious"]
            assert history[0]["message"].startswith("I'm so burnt out")
            assert history[1]["score"] == 40
            assert history[0]["timestamp"] == result["timestamp"]

            # 5. Weekly report summarizes and emails
            self.outbox.clear()
            report = client.post("/api/mood-history/report")
            assert report.status_code == 200
            assert report.json()["total"] == 2
            assert len(self.outbox) == 1
            assert "Weekly" in self.outbox[0]["Subject"]

    def test_chat_rejects_empty_message(self):
        with TestClient(self.app) as client:
            register(client)
            response = client.post("/api/chat", json={"message": "   "})
            assert response.status_code == 400
            assert response.json()["detail"] == "Message cannot be empty"
            assert client.get("/api/mood-history").json() == []

    def test_chat_degrades_when_classification_unavailable(self, notifier, composer):
        def broken(text: str) -> float:
            raise RuntimeError("lexicon missing")

        app = create_app(
            self.settings,
            classifier=MoodClassifier(scorer=broken),
            notifier=notifier,
            composer=composer,
        )
        with TestClient(app) as client:
            register(client)
            response = client.post("/api/chat", json={"message": "whatever"})
            assert response.status_code == 200
            assert response.json()["mood"] == "Neutral"

    def test_session_summary_email(self, notifier, composer):
        settings = self.settings.model_copy(update={"send_session_summaries": True})
        app = create_app(settings, notifier=notifier, composer=composer)
        with TestClient(app) as client:
            register(client)
            self.outbox.clear()
            client.post("/api/chat", json={"message": "Deadline pressure all week"})
            assert len(self.outbox) == 1
            assert "Session Summary" in self.outbox[0]["Subject"]

    def test_recommendation_filters(self):
        with TestClient(self.app) as client:
            everything = client.get("/api/recommendations").json()
            breathing = client.get("/api/recommendations", params={"type": "breathing"}).json()
            assert breathing
            assert len(breathing) < len(everything)
            assert {r["type"] for r in breathing} == {"breathing"}

            anxious = client.get("/api/recommendations", params={"mood": "ANXIOUS"}).json()
            assert all("Anxious" in r["mood_tags"] for r in anxious)

            assert client.get("/api/recommendations", params={"mood": "sad"}).status_code == 400

    def test_payment_workflow(self):
        """Test create order -> verify -> consultations -> confirmation email."""
        with TestClient(self.app) as client:
            user = register(client)
            self.outbox.clear()

            order = client.post("/api/payment/create-order", json={"amount": 999})
            assert order.status_code == 200
            assert order.json() == {
                "success": True,
                "order_id": "order_1",
                "amount": 99900,
                "currency": "INR",
                "key": RAZORPAY_KEY_ID,
            }

            payload = {
                "razorpay_order_id": "order_1",
                "razorpay_payment_id": "pay_1",
                "razorpay_signature": sign("order_1", "pay_1", RAZORPAY_KEY_SECRET),
                "amount": 99900,
            }
            verified = client.post("/api/payment/verify", json=payload)
            assert verified.status_code == 200
            consultation = verified.json()["consultation"]
            assert consultation["amount"] == 999.0
            assert consultation["status"] == "confirmed"
            assert consultation["user_id"] == user["id"]

            assert len(self.outbox) == 1
            assert "Booking Confirmed" in self.outbox[0]["Subject"]

            listed = client.get("/api/payment/consultations").json()
            assert [c["id"] for c in listed] == [consultation["id"]]
            me = client.get("/api/auth/me").json()
            assert me["user"]["consultations"] == [consultation["id"]]

            # The same payment cannot book twice
            assert client.post("/api/payment/verify", json=payload).status_code == 409

    def test_payment_signature_mismatch(self):
        with TestClient(self.app) as client:
            register(client)
            response = client.post(
                "/api/payment/verify",
                json={
                    "razorpay_order_id": "order_1",
                    "razorpay_payment_id": "pay_1",
                    "razorpay_signature": "forged",
                    "amount": 99900,
                },
            )
            assert response.status_code == 400
            assert client.get("/api/payment/consultations").json() == []

    def test_payment_amount_comes_from_order(self):
        with TestClient(self.app) as client:
            register(client)
            client.post("/api/payment/create-order", json={"amount": 999})
            payload = {
                "razorpay_order_id": "order_1",
                "razorpay_payment_id": "pay_1",
                "razorpay_signature": sign("order_1", "pay_1", RAZORPAY_KEY_SECRET),
            }

            tampered = client.post("/api/payment/verify", json={**payload, "amount": 1})
            assert tampered.status_code == 400
            assert client.get("/api/payment/consultations").json() == []

            # Without an amount the order's amount is booked
            verified = client.post("/api/payment/verify", json=payload)
            assert verified.status_code == 200
            assert verified.json()["consultation"]["amount"] == 999.0
            assert verified.json()["consultation"]["currency"] == "INR"

    def test_payment_create_order_rejects_other_price(self):
        with TestClient(self.app) as client:
            register(client)
            response = client.post("/api/payment/create-order", json={"amount": 1})
            assert response.status_code == 400
            assert client.post("/api/payment/create-order", json={}).json()["amount"] == 99900

    def test_payment_unknown_order(self):
        with TestClient(self.app) as client:
            register(client)
            response = client.post(
                "/api/payment/verify",
                json={
                    "razorpay_order_id": "order_9",
                    "razorpay_payment_id": "pay_1",
                    "razorpay_signature": sign("order_9", "pay_1", RAZORPAY_KEY_SECRET),
                },
            )
            assert response.status_code == 400
            assert client.get("/api/payment/consultations").json() == []

    def test_payment_gateway_failure(self, notifier, composer):
        failing = PaymentGateway(
            RAZORPAY_KEY_ID,
            RAZORPAY_KEY_SECRET,
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        app = create_app(self.settings, notifier=notifier, composer=composer, payments=failing)
        with TestClient(app) as client:
            register(client)
            response = client.post("/api/payment/create-order", json={"amount": 999})
            assert response.status_code == 502

    def test_payments_not_configured(self, notifier, composer):
        app = create_app(self.settings, notifier=notifier, composer=composer)
        with TestClient(app) as client:
            register(client)
            response = client.post("/api/payment/create-order", json={"amount": 999})
            assert response.status_code == 503


# MARK: - Streaming


class TestAPIStream:
    """Integration tests covering the mood history feed using SSE."""

    def setup_method(self):
        """Set up a fresh app with a new user store for each test."""
        self.users = UserStore()
        self.app = create_app(Settings(_env_file=None, jwt_secret=JWT_SECRET), users=self.users)

    async def test_streaming_api(self):
        """Test streaming API with a consumer that collects mood history."""

        # Start a real HTTP server in a background thread on a free port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        host, port = sock.getsockname()
        sock.close()
        base_url = f"http://{host}:{port}"

        config = uvicorn.Config(
            app=self.app,
            host=host,
            port=port,
            loop="asyncio",
            lifespan="on",
            log_level="warning",
            ws="none",
        )
        server = uvicorn.Server(config)

        def run_server() -> None:
            asyncio.run(server.serve())

        thread = threading.Thread(target=run_server, daemon=True)
        thread.start()

        # Wait for server to be ready
        start = time.time()
        while time.time() - start < 5.0:
            try:
                r = httpx.get(base_url + "/health", timeout=0.2)
                if r.status_code == 200:
                    break
            except httpx.HTTPError:
                pass
            time.sleep(0.05)
        else:
            server.should_exit = True
            thread.join(timeout=1.0)
            assert False, "Server did not start in time"

        async with httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(5.0, read=None)
        ) as client:
            signup = await client.post(
                "/api/auth/signup",
                json={"username": "alice", "email": "alice@example.com", "password": PASSWORD},
            )
            assert signup.status_code == 201

            # The CLI login prints the session token used for the rest of the test
            result = await asyncio.to_thread(
                runner.invoke,
                cli_app,
                ["login", "alice@example.com", "--password", PASSWORD, "--url", base_url],
            )
            assert result.exit_code == 0, result.output
            token = result.output.strip()
            assert decode_token(token, JWT_SECRET) == signup.json()["user"]["id"]
            session = {"Cookie": f"{TOKEN_COOKIE}={token}"}

            first = await client.post(
                "/api/chat", json={"message": "I'm so burnt out"}, headers=session
            )
            assert first.status_code == 200

            received: list[str] = []
            got_backlog = asyncio.Event()

            async def consume() -> None:
                async with aconnect_sse(
                    client, "GET", "/api/mood-history/stream", headers=session
                ) as es:
                    assert es.response.status_code == 200
                    content_type = es.response.headers.get("content-type", "")
                    assert content_type.startswith("text/event-stream")

                    async for sse in es.aiter_sse():
                        if sse.event == "error":
                            assert False, f"SSE error event: {sse.data}"

                        payload = json.loads(sse.data)
                        received.append(payload["mood"])

                        if len(received) == 1:
                            got_backlog.set()

                        if len(received) >= 3:
                            break

            consumer_task = asyncio.create_task(consume())

            try:
                await asyncio.wait_for(got_backlog.wait(), timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception, asyncio.CancelledError):
                    await consumer_task
                server.should_exit = True
                thread.join(timeout=1.0)
                assert False, "Consumer did not receive the history backlog in time"

            # Two more chats via the HTTP API
            resp1 = await client.post(
                "/api/chat", json={"message": "I feel anxious today"}, headers=session
            )
            assert resp1.status_code == 200
            resp2 = await client.post(
                "/api/chat", json={"message": "Had a wonderful, fantastic day"}, headers=session
            )
            assert resp2.status_code == 200

            try:
                await asyncio.wait_for(consumer_task, timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception, asyncio.CancelledError):
                    await consumer_task
                server.should_exit = True
                thread.join(timeout=1.0)
                assert False, f"Streaming test timed out. Received: {received}"

            assert received == ["Burnt Out", "Anxious", "Motivated"]

        # Shutdown server
        server.should_exit = True
        thread.join(timeout=2.0)
