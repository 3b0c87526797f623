"""HTTP client for the remote ETA predictor."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fleetscan.exceptions import PredictorError

_logger = logging.getLogger(__name__)


class Predictor(Protocol):
    """Structural predictor interface.

    Implementations return the decoded response body and raise
    :class:`fleetscan.exceptions.PredictorError` for any failure.
    """

    async def predict(self, payload: Mapping[str, Any]) -> dict[str, Any]: ...


class HttpPredictor:
    """POSTs a JSON payload to the predictor and returns the JSON reply."""

    def __init__(
        self,
        url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 3.0,
    ) -> None:
        self._url = url
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def predict(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        _logger.debug("POST %s", self._url)
        try:
            async with self._http.post(self._url, json=dict(payload), timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise PredictorError(
                        f"HTTP {resp.status} from predictor: {text[:200]}",
                        target=self._url,
                        status_code=resp.status,
                    )
        except PredictorError:
            raise
        except TimeoutError as exc:
            raise PredictorError("Predictor request timed out", target=self._url) from exc
        except aiohttp.ClientError as exc:
            raise PredictorError(f"Predictor request failed: {exc}", target=self._url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PredictorError(f"Invalid JSON from predictor: {text[:200]}", target=self._url) from exc
        if not isinstance(body, dict):
            raise PredictorError("Predictor response is not an object", target=self._url)
        return body
