import httpx
import pytest
from fastapi.testclient import TestClient

from src.api.app import app
from src.api.routes import get_upstream_client
from src.services.upstream import UpstreamClient


class FakeUpstream:
    """Stands in for the chat-completion API behind an httpx.MockTransport"""

    def __init__(self):
        self.requests = []
        self.response = httpx.Response(
            200, json={"choices": [{"message": {"content": "ok"}}]}
        )
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_upstream():
    return FakeUpstream()


@pytest.fixture
def upstream_client(fake_upstream):
    return UpstreamClient(api_key="test-key", transport=httpx.MockTransport(fake_upstream))


@pytest.fixture
def client(upstream_client):
    app.dependency_overrides[get_upstream_client] = lambda: upstream_client
    yield TestClient(app)
    app.dependency_overrides.clear()
