from unittest.mock import MagicMock

import pytest
import requests

from domain.errors import ResolutionError
from services.grounding_client import GroundingClient, GroundingResponse


def _client(session):
    return GroundingClient(api_key="test-key", model="gemini-test", session=session)


def _response(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.text = "error body"
    resp.json.return_value = body
    return resp


def test_generate_content_sends_maps_tool_and_parses_reply():
    session = MagicMock()
    session.post.return_value = _response(
        body={
            "candidates": [
                {
                    "content": {"parts": [{"text": '{"formattedAddress": "X"}'}]},
                    "groundingMetadata": {
                        "groundingChunks": [
                            {"web": {"uri": "https://example.com"}},
                            {"maps": {"uri": "https://maps.google.com/?cid=1", "title": "X"}},
                        ]
                    },
                }
            ]
        }
    )

    result = _client(session).generate_content("find X")

    assert result.text == '{"formattedAddress": "X"}'
    assert result.map_uri() == "https://maps.google.com/?cid=1"
    args, kwargs = session.post.call_args
    assert args[0].endswith("/models/gemini-test:generateContent")
    assert kwargs["json"]["tools"] == [{"googleMaps": {}}]
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "find X"
    assert kwargs["headers"]["x-goog-api-key"] == "test-key"
    assert kwargs["timeout"] == 20.0


def test_empty_reply_raises():
    session = MagicMock()
    session.post.return_value = _response(body={"candidates": []})
    with pytest.raises(ResolutionError):
        _client(session).generate_content("x")


@pytest.mark.parametrize(
    "candidate",
    [
        {"content": "oops", "groundingMetadata": []},
        {"content": {"parts": "oops"}},
        {"content": None, "groundingMetadata": "oops"},
    ],
)
def test_malformed_candidate_raises_resolution_error(candidate):
    session = MagicMock()
    session.post.return_value = _response(body={"candidates": [candidate]})
    with pytest.raises(ResolutionError):
        _client(session).generate_content("x")


def test_malformed_grounding_metadata_keeps_text():
    session = MagicMock()
    session.post.return_value = _response(
        body={
            "candidates": [
                {"content": {"parts": [{"text": "hi"}]}, "groundingMetadata": "oops"}
            ]
        }
    )
    result = _client(session).generate_content("x")
    assert result.text == "hi"
    assert result.map_uri() is None


def test_http_error_raises():
    session = MagicMock()
    session.post.return_value = _response(status=429, body={})
    with pytest.raises(ResolutionError, match="429"):
        _client(session).generate_content("x")


def test_timeout_is_flagged():
    session = MagicMock()
    session.post.side_effect = requests.Timeout("slow")
    with pytest.raises(ResolutionError) as exc_info:
        _client(session).generate_content("x")
    assert exc_info.value.timed_out is True


def test_connection_error_raises():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("down")
    with pytest.raises(ResolutionError) as exc_info:
        _client(session).generate_content("x")
    assert exc_info.value.timed_out is False


def test_missing_api_key_raises_without_calling_service():
    session = MagicMock()
    with pytest.raises(ResolutionError):
        GroundingClient(api_key=None, session=session).generate_content("x")
    session.post.assert_not_called()


def test_map_uri_absent():
    assert GroundingResponse(text="x", grounding_chunks=[{"web": {"uri": "u"}}]).map_uri() is None
