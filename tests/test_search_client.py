from unittest.mock import MagicMock, patch

import pytest
import requests

from errors import ConfigurationError, NetworkError
from search_client import REQUEST_TIMEOUT_SECONDS, SERPER_API_URL, search_references


def _mock_resp(payload: dict) -> MagicMock:
    mock = MagicMock()
    mock.json.return_value = payload
    return mock


def _organic(*links: str) -> dict:
    return {
        "organic": [
            {"link": link, "title": f"Title {i}", "snippet": f"Snippet {i}"}
            for i, link in enumerate(links)
        ]
    }


def test_search_requests_twice_the_desired_count() -> None:
    with patch.dict("os.environ", {"SERPER_API_KEY": "test-key"}), \
         patch("search_client.requests.post", return_value=_mock_resp({"organic": []})) as mock_post:
        search_references("chatbots for support", n=3)

    args, kwargs = mock_post.call_args
    assert args[0] == SERPER_API_URL
    assert kwargs["json"] == {"q": "chatbots for support", "num": 6}
    assert kwargs["headers"]["X-API-KEY"] == "test-key"
    assert kwargs["timeout"] == REQUEST_TIMEOUT_SECONDS


def test_search_filters_and_stops_at_n() -> None:
    payload = _organic(
        "https://www.youtube.com/watch?v=1",
        "https://acme.io/blog/chatbots-101",
        "https://en.wikipedia.org/wiki/Chatbot",
        "https://widgets.dev/guide/support-automation",
        "https://third.dev/blog/never-reached",
    )

    with patch.dict("os.environ", {"SERPER_API_KEY": "test-key"}), \
         patch("search_client.requests.post", return_value=_mock_resp(payload)):
        results = search_references("chatbots")

    assert [r.url for r in results] == [
        "https://acme.io/blog/chatbots-101",
        "https://widgets.dev/guide/support-automation",
    ]
    assert results[0].title == "Title 1"
    assert results[0].snippet == "Snippet 1"


def test_search_returns_fewer_when_results_run_out() -> None:
    payload = _organic("https://facebook.com/page", "https://acme.io/blog/only-one")

    with patch.dict("os.environ", {"SERPER_API_KEY": "test-key"}), \
         patch("search_client.requests.post", return_value=_mock_resp(payload)):
        results = search_references("chatbots")

    assert len(results) == 1


def test_search_tolerates_missing_organic_key() -> None:
    with patch.dict("os.environ", {"SERPER_API_KEY": "test-key"}), \
         patch("search_client.requests.post", return_value=_mock_resp({"searchParameters": {}})):
        assert search_references("chatbots") == []


def test_search_raises_without_api_key() -> None:
    with patch.dict("os.environ", {}, clear=True), \
         patch("search_client.requests.post") as mock_post:
        with pytest.raises(ConfigurationError, match="SERPER_API_KEY"):
            search_references("chatbots")

    mock_post.assert_not_called()


def test_search_timeout_raises_network_error() -> None:
    with patch.dict("os.environ", {"SERPER_API_KEY": "test-key"}), \
         patch("search_client.requests.post", side_effect=requests.Timeout("timed out")):
        with pytest.raises(NetworkError, match="timed out"):
            search_references("chatbots")


def test_search_http_error_raises_network_error() -> None:
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")

    with patch.dict("os.environ", {"SERPER_API_KEY": "test-key"}), \
         patch("search_client.requests.post", return_value=response):
        with pytest.raises(NetworkError):
            search_references("chatbots")
