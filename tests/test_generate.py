"""Tests for POST /generate (Gemini proxy)."""

import httpx
import pytest

PROMPT = 'Generate a short product description for "Widget". Key features: fast. Target audience: devs.'


class TestGenerateSuccess:
    """Successful generation is relayed verbatim."""

    def test_provider_response_is_returned_unmodified(self, client, upstream):
        response = client.post("/generate", json={"prompt": PROMPT})

        assert response.status_code == 200
        assert response.json() == upstream.gemini_response[1]

    def test_request_sent_to_gemini(self, client, upstream):
        client.post("/generate", json={"prompt": PROMPT}, headers={"User-Agent": "Frontend/1.0"})

        assert len(upstream.gemini_calls) == 1
        call = upstream.gemini_calls[0]
        assert call["path"] == "/v1beta/models/gemini-2.0-flash:generateContent"
        assert call["params"] == {"key": "test-key"}
        assert call["payload"] == {
            "contents": [{"role": "user", "parts": [{"text": PROMPT}]}],
            "generationConfig": {"responseMimeType": "text/plain"},
        }
        assert call["user_agent"] == "Frontend/1.0"

    def test_configured_model_is_used(self, make_client, upstream):
        client = make_client(GEMINI_MODEL="gemini-2.5-flash")

        client.post("/generate", json={"prompt": PROMPT})

        assert upstream.gemini_calls[0]["path"] == "/v1beta/models/gemini-2.5-flash:generateContent"

    def test_frontend_path(self, client, upstream):
        response = client.post("/api/gemini-generate-description", json={"prompt": PROMPT})

        assert response.status_code == 200
        assert len(upstream.gemini_calls) == 1


class TestGenerateRejections:
    """Requests rejected before reaching Gemini."""

    @pytest.mark.parametrize("body", [{"prompt": ""}, {}, {"prompt": None}])
    def test_missing_prompt(self, client, upstream, body):
        response = client.post("/generate", json=body)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "prompt" in response.json()["error"]
        assert upstream.gemini_calls == []

    def test_missing_api_key(self, make_client, upstream):
        client = make_client(GEMINI_API_KEY="")

        response = client.post("/generate", json={"prompt": PROMPT})

        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error: Missing Gemini API key."
        assert upstream.gemini_calls == []

    def test_method_not_allowed(self, client):
        response = client.put("/generate", json={"prompt": PROMPT})

        assert response.status_code == 405
        assert response.json()["success"] is False

    def test_bare_options(self, client, upstream):
        response = client.options("/generate")

        assert response.status_code == 200
        assert upstream.gemini_calls == []


class TestGenerateUpstreamErrors:
    """Gemini failures keep their status code."""

    def test_provider_error_message_and_status(self, client, upstream):
        upstream.gemini_response = (400, {"error": {"code": 400, "message": "API key not valid.", "status": "INVALID_ARGUMENT"}})

        response = client.post("/generate", json={"prompt": PROMPT})

        assert response.status_code == 400
        assert response.json()["error"] == "Gemini API error: API key not valid."
        assert "INVALID_ARGUMENT" in response.json()["detail"]

    def test_provider_error_without_json(self, client, upstream):
        upstream.gemini_response = (503, "Service Unavailable")

        response = client.post("/generate", json={"prompt": PROMPT})

        assert response.status_code == 503
        assert response.json()["error"] == "Gemini API error: Unknown error"

    def test_unreachable_provider(self, client, upstream):
        upstream.gemini_exception = httpx.ConnectTimeout("timed out")

        response = client.post("/generate", json={"prompt": PROMPT})

        assert response.status_code == 502
        assert "Could not reach Gemini API" in response.json()["error"]

    @pytest.mark.parametrize("body", ["<html>oops</html>", ["not", "an", "object"]])
    def test_unusable_success_body_is_bad_gateway(self, client, upstream, body):
        upstream.gemini_response = (200, body)

        response = client.post("/generate", json={"prompt": PROMPT})

        assert response.status_code == 502
        assert response.json()["success"] is False
        assert response.json()["error"] == "Gemini API returned an unreadable response."
