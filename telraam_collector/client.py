"""Traffic API client with retry logic."""

import logging
import time
from typing import Any, List, Optional

import requests

from .models import DateRange, Reading
from .timeutils import format_datetime_for_api

logger = logging.getLogger(__name__)

TRAFFIC_ENDPOINT = "/v1/reports/traffic"
REPORT_LEVEL = "segments"
REPORT_FORMAT = "per-hour"

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class TelraamApiError(Exception):
    """Raised when an API request fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class TelraamClient:
    """Fetches hourly traffic reports for a device."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_sec: float = 30.0,
        max_retries: int = 3,
        initial_backoff_sec: float = 1.0,
        max_backoff_sec: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize API client.

        Args:
            api_url: Base URL of the traffic API
            api_key: API key sent as X-Api-Key
            timeout_sec: Per-request timeout
            max_retries: Maximum attempts per request
            initial_backoff_sec: Initial backoff delay in seconds
            max_backoff_sec: Maximum backoff delay in seconds
            session: Optional preconfigured requests session
        """
        if not api_key:
            raise ValueError("Traffic API key is required (set TELRAAM_API_KEY)")

        self.api_url = api_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.max_retries = max(1, max_retries)
        self.initial_backoff_sec = initial_backoff_sec
        self.max_backoff_sec = max_backoff_sec

        self.session = session or requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "X-Api-Key": api_key}
        )

        logger.debug(f"Initialized traffic API client for {self.api_url}")

    def fetch_traffic_data(self, device_id: str, date_range: DateRange) -> List[Reading]:
        """
        Fetch hourly traffic readings for a device.

        Args:
            device_id: Device/segment identifier
            date_range: Window to fetch

        Returns:
            List of readings (empty if the report is missing)

        Raises:
            TelraamApiError: Request failed after all retries, or the report
                is not a list of objects
        """
        body = {
            "level": REPORT_LEVEL,
            "format": REPORT_FORMAT,
            "id": device_id,
            "time_start": format_datetime_for_api(date_range.start),
            "time_end": format_datetime_for_api(date_range.end),
        }
        logger.info(
            f"Fetching data for device {device_id} from {body['time_start']} "
            f"to {body['time_end']}"
        )

        payload = self._post_with_retry(TRAFFIC_ENDPOINT, body, device_id)

        report = payload.get("report") if isinstance(payload, dict) else None
        if not report:
            logger.warning(f"No data received for device {device_id}")
            return []
        if not isinstance(report, list) or not all(isinstance(r, dict) for r in report):
            raise TelraamApiError(
                f"Malformed report for device {device_id}: expected a list of objects",
                response_data=payload,
            )

        logger.info(f"Retrieved {len(report)} data points for device {device_id}")
        return list(report)

    def _post_with_retry(self, path: str, body: dict, device_id: str) -> Any:
        """
        POST with exponential backoff.

        Retries connection errors, timeouts, 429 and 5xx responses. Other HTTP
        errors fail immediately.
        """
        url = f"{self.api_url}{path}"
        backoff = self.initial_backoff_sec
        last_error: Optional[TelraamApiError] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.post(url, json=body, timeout=self.timeout_sec)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = TelraamApiError(f"Network error: {e}")
                logger.warning(
                    f"Network error for device {device_id} "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )
            except requests.RequestException as e:
                raise TelraamApiError(f"Request failed: {e}") from e
            else:
                if response.ok:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise TelraamApiError(
                            "API returned invalid JSON",
                            response.status_code,
                            response.text,
                        ) from e

                last_error = TelraamApiError(
                    f"API request failed with status {response.status_code}: "
                    f"{response.reason}",
                    response.status_code,
                    response.text,
                )
                if response.status_code not in RETRYABLE_STATUS:
                    logger.error(f"API error for device {device_id}: {last_error}")
                    raise last_error
                logger.warning(
                    f"API error for device {device_id} "
                    f"(attempt {attempt}/{self.max_retries}): {last_error}"
                )

            if attempt < self.max_retries:
                logger.info(f"Retrying in {backoff}s...")
                time.sleep(backoff)
                backoff = min(backoff * 2, self.max_backoff_sec)

        logger.error(f"Max retries reached for device {device_id}")
        raise last_error or TelraamApiError("Request failed")
