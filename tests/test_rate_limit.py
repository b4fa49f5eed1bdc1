import unittest

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from fitsnap.middlewares.rate_limit_middleware import on_rate_limit_exceeded
from fitsnap.utils.client_ip import get_client_identifier


def sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class RateLimitTests(unittest.TestCase):
    path = "/limited"

    def setUp(self):
        limiter = Limiter(key_func=get_client_identifier, storage_uri="memory://")
        app = FastAPI()
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, on_rate_limit_exceeded)

        @app.get(self.path)
        @limiter.limit("2/minute")
        async def limited(request: Request):
            return {"ok": True}

        self.client = TestClient(app)

    def test_third_request_is_rejected(self):
        blocked = {"endpoint": self.path, "status": "blocked"}
        hits = {"endpoint": self.path}
        blocked_before = sample("fitsnap_rate_limit_requests_total", blocked)
        hits_before = sample("fitsnap_rate_limit_hits_total", hits)

        self.assertEqual(self.client.get(self.path).status_code, 200)
        self.assertEqual(self.client.get(self.path).status_code, 200)
        response = self.client.get(self.path)

        self.assertEqual(response.status_code, 429)
        self.assertEqual(sample("fitsnap_rate_limit_requests_total", blocked), blocked_before + 1)
        self.assertEqual(sample("fitsnap_rate_limit_hits_total", hits), hits_before + 1)


if __name__ == "__main__":
    unittest.main()
