"""Tests for the forecasting model HTTP client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from whatif.core.forecasting.errors import ModelInvocationError
from whatif.services.forecast_client import ForecastModelClient

PAYLOAD = {"hadm_id": "ADM-1", "horizon": 3}


def _make_response(json_data=None, status_code: int = 200) -> MagicMock:
    """Mock httpx.Response with a synchronous .json()."""
    resp = MagicMock()
    resp.status_code = status_code
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


def _patched_client(mock_client_cls, post_result=None, post_side_effect=None):
    mock_client = AsyncMock()
    if post_side_effect is not None:
        mock_client.post.side_effect = post_side_effect
    else:
        mock_client.post.return_value = post_result
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.fixture
def model_client() -> ForecastModelClient:
    return ForecastModelClient(
        url="http://model.test/predict",
        api_key="test-api-key",
        timeout=5.0,
        max_retries=1,
    )


class TestPredict:
    @pytest.mark.asyncio
    async def test_returns_q50(self, model_client):
        resp = _make_response({"predictions": {"q50": [0.1, 0.2, 0.3], "q90": [1, 2, 3]}})
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            mock_client = _patched_client(cls, resp)
            result = await model_client.predict(PAYLOAD, expected_length=3)

        assert result == [0.1, 0.2, 0.3]
        mock_client.post.assert_awaited_once()
        call = mock_client.post.call_args
        assert call.args[0] == "http://model.test/predict"
        assert call.kwargs["json"] == PAYLOAD
        assert call.kwargs["headers"]["Authorization"] == "Bearer test-api-key"
        cls.assert_called_with(timeout=5.0)

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self):
        client = ForecastModelClient(url="http://model.test/predict", api_key="")
        resp = _make_response({"predictions": {"q50": [0.0]}})
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            mock_client = _patched_client(cls, resp)
            await client.predict(PAYLOAD, expected_length=1)

        assert "Authorization" not in mock_client.post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried(self, model_client):
        resp = _make_response({"detail": "boom"}, status_code=500)
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            mock_client = _patched_client(cls, resp)
            with pytest.raises(ModelInvocationError, match="HTTP 500") as exc_info:
                await model_client.predict(PAYLOAD, expected_length=3)

        assert mock_client.post.await_count == 1
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_non_json_body(self, model_client):
        resp = _make_response(ValueError("Expecting value"))
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            _patched_client(cls, resp)
            with pytest.raises(ModelInvocationError, match="invalid JSON"):
                await model_client.predict(PAYLOAD, expected_length=3)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"predictions": {}},
            {"predictions": {"q50": "not-a-list"}},
            {"predictions": {"q50": [0.1, "x", 0.3]}},
            [0.1, 0.2, 0.3],
        ],
    )
    async def test_missing_q50(self, model_client, body):
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            _patched_client(cls, _make_response(body))
            with pytest.raises(ModelInvocationError, match="q50"):
                await model_client.predict(PAYLOAD, expected_length=3)

    @pytest.mark.asyncio
    async def test_wrong_length(self, model_client):
        resp = _make_response({"predictions": {"q50": [0.1, 0.2]}})
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            _patched_client(cls, resp)
            with pytest.raises(ModelInvocationError, match="expected 3"):
                await model_client.predict(PAYLOAD, expected_length=3)


class TestRetries:
    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self, model_client):
        ok = _make_response({"predictions": {"q50": [1.0]}})
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            mock_client = _patched_client(
                cls, post_side_effect=[httpx.ConnectError("refused"), ok]
            )
            result = await model_client.predict(PAYLOAD, expected_length=1)

        assert result == [1.0]
        assert mock_client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, model_client):
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            mock_client = _patched_client(
                cls, post_side_effect=httpx.ConnectError("refused")
            )
            with pytest.raises(ModelInvocationError, match="unreachable") as exc_info:
                await model_client.predict(PAYLOAD, expected_length=1)

        assert mock_client.post.await_count == 2
        assert exc_info.value.timed_out is False
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_timeout_maps_to_gateway_timeout(self):
        client = ForecastModelClient(url="http://model.test/predict", max_retries=0)
        with patch("whatif.services.forecast_client.httpx.AsyncClient") as cls:
            mock_client = _patched_client(
                cls, post_side_effect=httpx.ReadTimeout("slow")
            )
            with pytest.raises(ModelInvocationError, match="timed out") as exc_info:
                await client.predict(PAYLOAD, expected_length=1)

        assert mock_client.post.await_count == 1
        assert exc_info.value.timed_out is True
        assert exc_info.value.status_code == 504
