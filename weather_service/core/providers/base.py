from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from requests import Response

from weather_service.core.abstractions import WeatherResult
from weather_service.core.context import CallContext
from weather_service.core.exceptions import UpstreamError


@dataclass
class RequestConfig:
    timeout: float = 10.0


class UpstreamFetcher:
    """Base class for HTTP upstreams: one attempt per :meth:`fetch` call.

    Transport errors, non-2xx responses and undecodable bodies all become
    ``UpstreamError`` so the retry driver can treat them alike.
    """

    name = "upstream"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or requests.Session()
        self._log = logging.getLogger(self.__class__.__name__)

    def fetch(self, ctx: CallContext) -> WeatherResult:
        raise NotImplementedError

    def _timeout(self, ctx: CallContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self.request_config.timeout
        return max(0.001, min(self.request_config.timeout, remaining))

    def _handle_response(self, response: Response) -> Response:
        if not 200 <= response.status_code < 300:
            self._log.error("Upstream returned %s: %s", response.status_code, response.text[:200])
            raise UpstreamError(f"upstream error: {response.status_code}")
        return response

    def _request(self, ctx: CallContext, method: str, url: str, **kwargs) -> Response:
        ctx.raise_if_done()
        try:
            response = self.session.request(method, url, timeout=self._timeout(ctx), **kwargs)
        except requests.Timeout as exc:
            self._log.error("Request timed out", exc_info=exc)
            raise UpstreamError("timeout") from exc
        except requests.RequestException as exc:
            self._log.error("Request failed", exc_info=exc)
            raise UpstreamError("request failed") from exc
        return self._handle_response(response)

    def _json(self, response: Response) -> dict:
        try:
            data = response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise UpstreamError("invalid json") from exc
        if not isinstance(data, dict):
            raise UpstreamError("unexpected payload")
        return data


__all__ = ["RequestConfig", "UpstreamFetcher"]
