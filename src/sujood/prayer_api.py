from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, Optional

import requests

from sujood.errors import CalculationError


class ApiError(CalculationError):
    """Raised when the timings API request fails or returns unusable data."""


class AladhanClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int = 8,
        max_retries: int = 2,
        backoff_base_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ) -> None:
        # We share a session for connection pooling and keep timeouts centralized.
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep
        self._session = session or requests.Session()
        self._logger = logging.getLogger(self.__class__.__name__)

    def get_timings(
        self,
        *,
        day: date,
        latitude: float,
        longitude: float,
        method: int,
        school: int,
        method_settings: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "latitude": str(latitude),
            "longitude": str(longitude),
            "method": str(method),
            "school": str(school),
            "timezonestring": "UTC",
            "iso8601": "true",
        }
        if method_settings is not None:
            # Only read by the API for its custom method.
            params["methodSettings"] = method_settings
        return self._get(f"/v1/timings/{day.strftime('%d-%m-%Y')}", params)

    def _get(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        attempt = 0
        while True:
            try:
                resp = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                if self._should_retry(attempt):
                    self._backoff(attempt, f"request error: {exc}")
                    attempt += 1
                    continue
                raise ApiError(f"Request failed for {url}: {exc}") from exc

            if resp.status_code >= 500 and self._should_retry(attempt):
                self._backoff(attempt, f"status {resp.status_code}")
                attempt += 1
                continue
            break

        if resp.status_code != 200:
            self._logger.warning("API call failed: %s %s", resp.status_code, resp.text)
            raise ApiError(f"API request failed with status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise ApiError("API returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise ApiError("API response must be a JSON object")

        return data

    def _should_retry(self, attempt: int) -> bool:
        return attempt < self._max_retries

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self._backoff_base_seconds * (2 ** attempt)
        self._logger.warning("Retrying timings request in %.1fs after %s", delay, reason)
        self._sleep(delay)
