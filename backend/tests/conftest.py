import json
import pytest
import requests
from unittest.mock import MagicMock

@pytest.fixture(scope="function")
def gemini_env(monkeypatch):
    """Chave falsa do Gemini para os testes."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-secret-key")
    return "test-secret-key"

@pytest.fixture(scope="function")
def no_gemini_env(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

def make_upstream_response(status_code, payload):
    """
    Monta um requests.Response real, como viria da API do Google.
    payload em bytes é usado como está (ex: corpo que não é JSON).
    """
    response = requests.models.Response()
    response.status_code = status_code
    response.headers["Content-Type"] = "application/json"
    response.encoding = "utf-8"
    if isinstance(payload, bytes):
        response._content = payload
    else:
        response._content = json.dumps(payload).encode("utf-8")
    return response

@pytest.fixture(scope="function")
def http_session():
    """Sessão HTTP mockada, injetada no handler no lugar do requests.Session."""
    session = MagicMock()
    session.post.return_value = make_upstream_response(200, {
        "candidates": [{"content": {"parts": [{"text": "hello"}]}}]
    })
    return session

@pytest.fixture
def upstream_response():
    return make_upstream_response

@pytest.fixture
def post_event():
    def _build(payload=None, **extra):
        event = {"httpMethod": "POST"}
        if payload is not None:
            event["body"] = json.dumps(payload)
        event.update(extra)
        return event
    return _build
