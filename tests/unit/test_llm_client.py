"""
Unit tests for the chat completions client.
"""

import httpx
import pytest
from httpx import Request, Response

from quizcycle.core.exceptions import ExternalServiceError
from quizcycle.integrations.llm_client import ChatMessage, LLMClient, extract_json

API_URL = "https://llm.test/v1/chat/completions"


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def respond(status: int, payload: dict | None = None) -> Response:
    return Response(status, json=payload or {}, request=Request("POST", API_URL))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(sleeps):
    llm = LLMClient(API_URL, api_key="sk-test", retry_attempts=2, sleep=sleeps.append)
    yield llm
    llm.close()


MESSAGES = [ChatMessage("user", "hello")]


class TestExtractJson:
    """Test JSON extraction from model replies."""

    def test_plain_json(self):
        assert extract_json('{"correct": true}') == {"correct": True}

    def test_strips_code_fences(self):
        assert extract_json('```json\n{"similarityScore": 85}\n```') == {"similarityScore": 85}

    def test_strips_bare_fences(self):
        assert extract_json('```\n{"a": 1}\n```') == {"a": 1}

    def test_malformed_json(self):
        with pytest.raises(ExternalServiceError):
            extract_json("Sure! Here is your answer.")

    def test_non_object(self):
        with pytest.raises(ExternalServiceError):
            extract_json("[1, 2, 3]")


class TestComplete:
    """Test request handling and retries."""

    def test_success(self, client, monkeypatch):
        captured = {}

        def mock_post(url, json):
            captured["url"] = url
            captured["json"] = json
            return respond(200, completion("hi there"))

        monkeypatch.setattr(client.client, "post", mock_post)

        assert client.complete(MESSAGES) == "hi there"
        assert captured["url"] == API_URL
        assert captured["json"]["messages"] == [{"role": "user", "content": "hello"}]
        assert captured["json"]["model"] == client.model

    def test_sends_bearer_token(self, client):
        assert client.client.headers["Authorization"] == "Bearer sk-test"

    def test_retries_server_errors(self, client, monkeypatch, sleeps):
        responses = [respond(503), respond(500), respond(200, completion("ok"))]
        monkeypatch.setattr(client.client, "post", lambda url, json: responses.pop(0))

        assert client.complete(MESSAGES) == "ok"
        assert sleeps == [1, 2]

    def test_client_error_not_retried(self, client, monkeypatch, sleeps):
        calls = []

        def mock_post(url, json):
            calls.append(url)
            return respond(401, {"error": "bad key"})

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(ExternalServiceError, match="401"):
            client.complete(MESSAGES)
        assert len(calls) == 1
        assert sleeps == []

    def test_timeouts_exhaust_retries(self, client, monkeypatch, sleeps):
        calls = []

        def mock_post(url, json):
            calls.append(url)
            raise httpx.ReadTimeout("timed out")

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(ExternalServiceError, match="3 attempts"):
            client.complete(MESSAGES)
        assert len(calls) == 3
        assert sleeps == [1, 2]

    def test_transport_errors_are_retried(self, client, monkeypatch):
        outcomes = [httpx.ConnectError("refused"), respond(200, completion("back"))]

        def mock_post(url, json):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        monkeypatch.setattr(client.client, "post", mock_post)
        assert client.complete(MESSAGES) == "back"

    def test_unexpected_shape(self, client, monkeypatch):
        monkeypatch.setattr(client.client, "post", lambda url, json: respond(200, {"choices": []}))
        with pytest.raises(ExternalServiceError):
            client.complete(MESSAGES)

    def test_non_json_body(self, client, monkeypatch, sleeps):
        calls = []

        def mock_post(url, json):
            calls.append(url)
            return Response(200, text="<html>gateway</html>", request=Request("POST", API_URL))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(ExternalServiceError, match="not JSON"):
            client.complete(MESSAGES)
        assert len(calls) == 1
        assert sleeps == []

    def test_complete_json(self, client, monkeypatch):
        monkeypatch.setattr(
            client.client, "post", lambda url, json: respond(200, completion('```json\n{"x": 1}\n```'))
        )
        assert client.complete_json(MESSAGES) == {"x": 1}
