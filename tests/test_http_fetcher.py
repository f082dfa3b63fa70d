"""
Bounded-timeout fetcher with mocked requests (no live network).
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from coin_pricer.core.errors import FetchTimeoutError, HttpStatusError, ParseError, TransportError
from coin_pricer.providers.http import FetchResponse, HttpFetcher


def _mock_response(status_code=200, chunks=(b'{"ok": true}',)):
    resp = MagicMock()
    resp.status_code = status_code
    resp.iter_content.return_value = iter(chunks)
    return resp


class TestHttpFetcher:
    @patch("coin_pricer.providers.http.requests.Session.request")
    def test_get_returns_body_and_status(self, mock_request):
        mock_request.return_value = _mock_response(200, (b'{"a": ', b"1}"))
        fetcher = HttpFetcher()
        resp = fetcher.get("https://example.test/x", 1000, params={"q": "1"})
        assert resp.status_code == 200
        assert resp.ok
        assert resp.json() == {"a": 1}
        _, kwargs = mock_request.call_args
        assert kwargs["params"] == {"q": "1"}
        assert kwargs["stream"] is True
        mock_request.return_value.close.assert_called_once()

    @patch("coin_pricer.providers.http.requests.Session.request")
    def test_post_sends_json_body(self, mock_request):
        mock_request.return_value = _mock_response()
        HttpFetcher().post("https://example.test/p", 1000, json_body={"coins": ["X"]})
        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert kwargs["json"] == {"coins": ["X"]}

    @patch("coin_pricer.providers.http.requests.Session.request")
    def test_non_2xx_is_returned_not_raised(self, mock_request):
        mock_request.return_value = _mock_response(404, (b"not found",))
        resp = HttpFetcher().get("https://example.test/x", 1000)
        assert resp.status_code == 404
        assert not resp.ok

    @patch("coin_pricer.providers.http.requests.Session.request")
    def test_connect_timeout_raises_fetch_timeout(self, mock_request):
        mock_request.side_effect = requests.ConnectTimeout("slow")
        with pytest.raises(FetchTimeoutError):
            HttpFetcher().get("https://example.test/x", 1000)

    @patch("coin_pricer.providers.http.requests.Session.request")
    def test_connection_error_raises_transport_error(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError) as exc_info:
            HttpFetcher().get("https://example.test/x", 1000)
        assert not isinstance(exc_info.value, FetchTimeoutError)

    @patch("coin_pricer.providers.http.time")
    @patch("coin_pricer.providers.http.requests.Session.request")
    def test_slow_body_is_cancelled_at_deadline(self, mock_request, mock_time):
        # start=0, first chunk inside the 1s budget, second chunk past it
        mock_time.monotonic.side_effect = [0.0, 0.5, 2.0, 2.0]
        resp = _mock_response(200, (b'{"a": ', b"1}"))
        mock_request.return_value = resp
        with pytest.raises(FetchTimeoutError):
            HttpFetcher().get("https://example.test/x", 1000)
        resp.close.assert_called_once()


class TestFetchResponse:
    def test_retryable_statuses_raise(self):
        for code in (429, 500, 502, 503, 504):
            with pytest.raises(HttpStatusError) as exc_info:
                FetchResponse("u", code, b"", 1.0).raise_for_retryable()
            assert exc_info.value.status_code == code

    def test_other_statuses_do_not_raise(self):
        FetchResponse("u", 404, b"", 1.0).raise_for_retryable()
        FetchResponse("u", 200, b"", 1.0).raise_for_retryable()

    def test_malformed_json_raises_parse_error(self):
        with pytest.raises(ParseError):
            FetchResponse("u", 200, b"<html>", 1.0).json()
