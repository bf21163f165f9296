import asyncio
import unittest
from unittest.mock import MagicMock, patch

import redis
from fastapi.testclient import TestClient
from redis import exceptions as redis_exceptions

from hitcounter.app import create_app
from hitcounter.config import Settings
from hitcounter.counter import CounterService
from hitcounter.store import InMemoryCounterStore, RedisCounterStore


def make_settings(**overrides):
    values = {"use_in_memory_backends": True}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class CounterApiTests(unittest.TestCase):
    def setUp(self):
        self.counters = CounterService()
        self.app = create_app(make_settings(), counter_service=self.counters)
        self.client = TestClient(self.app)

    def test_hit_then_count(self):
        for expected in (1, 2):
            response = self.client.post("/hit", params={"id": "docs"})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(
                response.json(), {"id": "docs", "hits": expected, "source": "fallback"}
            )

        response = self.client.get("/count", params={"id": "docs"})
        self.assertEqual(response.json()["hits"], 2)

    def test_default_identifier(self):
        self.client.get("/hit")
        response = self.client.get("/count")
        self.assertEqual(response.json(), {"id": "home", "hits": 1, "source": "fallback"})

    def test_count_text_formats(self):
        self.client.get("/hit", params={"id": "a"})
        response = self.client.get("/count", params={"id": "a", "format": "txt"})
        self.assertEqual(response.text, "1")
        self.assertTrue(response.headers["content-type"].startswith("text/plain"))

        response = self.client.get("/count.txt", params={"id": "a"})
        self.assertEqual(response.text, "1")
        self.assertEqual(response.headers["cache-control"], "no-cache")

    def test_badge_reads_without_incrementing(self):
        self.client.get("/hit", params={"id": "b"})
        for _ in range(3):
            response = self.client.get(
                "/badge", params={"id": "b", "style": "terminal", "bg": "#222"}
            )
            self.assertEqual(response.status_code, 200)
            self.assertTrue(response.headers["content-type"].startswith("image/svg+xml"))
            self.assertEqual(response.headers["cache-control"], "no-cache")
            self.assertIn('fill="#222"', response.text)
            self.assertIn(">1</text>", response.text)
        self.assertEqual(self.counters.read("b").value, 1)

    def test_badge_query_aliases(self):
        response = self.client.get(
            "/badge",
            params={"style": "mono", "labelColor": "red", "valueColor": "#0f0"},
        )
        self.assertIn('fill="red"', response.text)
        self.assertIn('fill="#0f0"', response.text)

    def test_badge_json(self):
        for _ in range(42):
            self.client.get("/hit", params={"id": "c"})
        response = self.client.get("/badge.json", params={"id": "c"})
        self.assertEqual(
            response.json(),
            {"schemaVersion": 1, "label": "views", "message": "42", "color": "blue"},
        )
        self.assertEqual(response.headers["cache-control"], "no-cache")

    def test_security_headers(self):
        response = self.client.get("/count")
        self.assertEqual(response.headers["x-content-type-options"], "nosniff")
        self.assertEqual(response.headers["x-frame-options"], "DENY")
        self.assertEqual(response.headers["cache-control"], "no-store")

    def test_method_not_allowed(self):
        response = self.client.post("/count")
        self.assertEqual(response.status_code, 405)
        self.assertIn("GET", response.headers["allow"])

    def test_healthz(self):
        response = self.client.get("/healthz")
        self.assertEqual(response.text, "ok")
        self.assertEqual(response.headers["x-counter-backend"], "memory")

    def test_cors_preflight(self):
        response = self.client.options(
            "/hit",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")


class AuthTests(unittest.TestCase):
    def make_client(self, **overrides):
        settings = make_settings(secret_token="s3cret", **overrides)
        return TestClient(create_app(settings, counter_service=CounterService()))

    def test_hit_requires_token(self):
        client = self.make_client()
        response = client.get("/hit")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"detail": "unauthorized"})
        self.assertEqual(client.get("/hit", params={"token": "nope"}).status_code, 401)

    def test_header_or_query_token(self):
        client = self.make_client()
        response = client.post("/hit", headers={"X-Auth-Token": "s3cret"})
        self.assertEqual(response.json()["hits"], 1)
        response = client.get("/hit", params={"token": "s3cret"})
        self.assertEqual(response.json()["hits"], 2)

    def test_reads_are_public_by_default(self):
        client = self.make_client()
        self.assertEqual(client.get("/count").status_code, 200)
        self.assertEqual(client.get("/badge").status_code, 200)

    def test_protect_reads(self):
        client = self.make_client(protect_reads=True)
        self.assertEqual(client.get("/count").status_code, 401)
        self.assertEqual(client.get("/badge.json").status_code, 401)
        response = client.get("/count", headers={"X-Auth-Token": "s3cret"})
        self.assertEqual(response.status_code, 200)


class DurableApiTests(unittest.TestCase):
    def test_source_reports_durable_then_fallback(self):
        store = InMemoryCounterStore()
        client = TestClient(
            create_app(make_settings(), counter_service=CounterService(store=store))
        )
        self.assertEqual(client.get("/hit").json()["source"], "durable")
        store.fail = True
        body = client.get("/hit").json()
        self.assertEqual(body, {"id": "home", "hits": 1, "source": "fallback"})
        self.assertEqual(client.get("/healthz").headers["x-counter-backend"], "redis")


class LifespanTests(unittest.TestCase):
    def test_require_redis_aborts_startup(self):
        store = RedisCounterStore(url="redis://localhost:6379/0")
        app = create_app(
            make_settings(require_redis=True),
            counter_service=CounterService(store=store),
        )
        refused = redis_exceptions.ConnectionError("refused")
        with patch.object(redis.Redis, "ping", side_effect=refused):
            with self.assertRaises(RuntimeError):
                with TestClient(app):
                    pass

    def test_startup_check_runs_off_the_event_loop(self):
        class RecordingStore(InMemoryCounterStore):
            loop_running = None

            @property
            def available(self):
                try:
                    asyncio.get_running_loop()
                    RecordingStore.loop_running = True
                except RuntimeError:
                    RecordingStore.loop_running = False
                return True

        counters = CounterService(store=RecordingStore())
        with TestClient(create_app(make_settings(), counter_service=counters)):
            pass
        self.assertIs(RecordingStore.loop_running, False)

    def test_shutdown_closes_counters(self):
        store = MagicMock()
        store.available = True
        app = create_app(make_settings(), counter_service=CounterService(store=store))
        with TestClient(app) as client:
            self.assertEqual(client.get("/healthz").text, "ok")
        store.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
