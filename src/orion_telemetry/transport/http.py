"""
HTTP Beacon Transport
=====================

Posts beacons to a collector endpoint with requests.

Posting happens on a single background worker so send() returns
immediately. Delivery is best effort: failures are logged and counted,
never retried.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import requests

from orion_telemetry.models.beacon import Beacon


logger = logging.getLogger(__name__)


class HttpBeaconTransport:
    """
    Fire-and-forget beacon forwarder.

    Attributes:
        url: Collector endpoint
        timeout_seconds: Per-request timeout

    Example:
        transport = HttpBeaconTransport("https://collector.example.com/beacons")
        transport.send(beacon)
        ...
        transport.close()
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            url: Collector endpoint (must be non-empty)
            timeout_seconds: Per-request timeout
            api_key: Sent as a bearer token when set
            session: requests.Session to post with (a new one if None)
        """
        if not url:
            raise ValueError("url is required for the http transport")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.url = url
        self.timeout_seconds = timeout_seconds

        self._session = session or requests.Session()
        self._session.headers["Content-Type"] = "application/json"
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="beacon-http")
        self._closed = False

        self.sent_count: int = 0
        self.failure_count: int = 0

    def send(self, beacon: Beacon) -> None:
        """Queue a beacon for posting."""
        if self._closed:
            logger.warning(f"HTTP transport closed, dropping beacon [{beacon.screen}]")
            return
        self._executor.submit(self._post, beacon.to_payload(), beacon.screen)

    def _post(self, payload: dict, screen: str) -> None:
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout_seconds)
            response.raise_for_status()
            self.sent_count += 1
            logger.debug(f"Beacon [{screen}] posted ({response.status_code})")
        except requests.RequestException as e:
            self.failure_count += 1
            logger.warning(f"Beacon [{screen}] post failed: {e}")

    def close(self, wait: bool = True) -> None:
        """Stop accepting beacons and, by default, drain the queue."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait)
        self._session.close()

    def metrics(self) -> dict:
        return {
            "type": "http",
            "url": self.url,
            "sent_count": self.sent_count,
            "failure_count": self.failure_count,
        }
