"""HTTP client for the external glucose forecasting model.

One bounded-timeout POST per forecast. Transport failures (connection
errors, timeouts) are retried a limited number of times; HTTP error
responses are never retried. Anything other than a 2xx JSON body with
a ``predictions.q50`` array of the expected length is a
``ModelInvocationError``; no forecast is ever fabricated.
"""

from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ValidationError

from whatif.config import settings
from whatif.core.forecasting.errors import ModelInvocationError
from whatif.logging_config import get_logger

logger = get_logger(__name__)


class _Quantiles(BaseModel):
    q50: list[float]


class ModelOutput(BaseModel):
    """The part of the model's response we rely on."""

    predictions: _Quantiles


class ForecastModel(Protocol):
    async def predict(
        self, payload: dict[str, Any], expected_length: int
    ) -> list[float]: ...


class ForecastModelClient:
    """Calls the forecasting service configured in settings."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._url = url or settings.forecast_model_url
        self._api_key = settings.forecast_model_api_key if api_key is None else api_key
        self._timeout = timeout or settings.forecast_model_timeout_seconds
        retries = settings.forecast_model_max_retries if max_retries is None else max_retries
        self._max_retries = max(retries, 0)

    def _headers(self) -> dict[str, str]:
        h: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            h["Authorization"] = f"Bearer {self._api_key}"
        return h

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    return await client.post(
                        self._url, headers=self._headers(), json=payload
                    )
            except httpx.TransportError as exc:
                timed_out = isinstance(exc, httpx.TimeoutException)
                logger.warning(
                    "Forecast model call failed",
                    attempt=attempt,
                    max_attempts=attempts,
                    timed_out=timed_out,
                    error=str(exc),
                )
                if attempt == attempts:
                    reason = "timed out" if timed_out else "is unreachable"
                    raise ModelInvocationError(
                        f"Forecasting service {reason}", timed_out=timed_out
                    ) from exc
        raise AssertionError("unreachable")

    async def predict(self, payload: dict[str, Any], expected_length: int) -> list[float]:
        """POST the payload and return the q50 forecast.

        Raises:
            ModelInvocationError: On transport failure after retries,
                non-2xx status, non-JSON body, or a body without a
                ``predictions.q50`` list of ``expected_length`` numbers.
        """
        logger.info("Invoking forecast model", hadm_id=payload.get("hadm_id"))
        resp = await self._post(payload)

        if not 200 <= resp.status_code < 300:
            logger.error("Forecast model returned an error", status_code=resp.status_code)
            raise ModelInvocationError(
                f"Forecasting service returned HTTP {resp.status_code}"
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise ModelInvocationError("Forecasting service returned invalid JSON") from e

        try:
            output = ModelOutput.model_validate(body)
        except ValidationError as e:
            raise ModelInvocationError(
                "Forecasting service response has no predictions.q50 array"
            ) from e

        q50 = output.predictions.q50
        if len(q50) != expected_length:
            raise ModelInvocationError(
                f"Forecasting service returned {len(q50)} values, expected {expected_length}"
            )
        return q50


def get_forecast_model() -> ForecastModel:
    """FastAPI dependency; overridden in tests."""
    return ForecastModelClient()
