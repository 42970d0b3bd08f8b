"""
Requests Adapter
================

A requests.Session that reports every request to a NetworkCorrelator.

Each call to request() produces one NetworkDescriptor:
    - start/end as epoch milliseconds around the call
    - status code, Content-Type and payload size from the response
    - server processing time from the `x-response-time` header, when present
    - on a transport error, status -1 and the error text (then re-raised)

Descriptors go to the screen passed at construction, or to the
correlator's current screen.

Example:
    session = TrackedSession(correlator)
    response = session.get("https://api.example.com/feed")
"""

import logging
import re
import time
from typing import Optional

import requests

from orion_telemetry.models.network import NetworkDescriptor
from orion_telemetry.network.correlator import NetworkCorrelator


logger = logging.getLogger(__name__)


_NUMBER = re.compile(r"[-+]?\d*\.?\d+")


def _epoch_ms() -> float:
    return time.time() * 1000.0


def parse_response_time(value: Optional[str]) -> Optional[float]:
    """
    Parse an `x-response-time` header into milliseconds.

    Accepts "12", "12.5ms" and "0.012s". Returns None when absent or invalid.
    """
    if not value:
        return None

    match = _NUMBER.search(value)
    if match is None:
        return None

    number = float(match.group())
    if number < 0:
        return None

    unit = value[match.end():].strip().lower()
    if unit == "s":
        number *= 1000.0
    return number


def _payload_size(response: requests.Response, stream: bool) -> Optional[int]:
    length = response.headers.get("Content-Length")
    if length is not None and length.isdigit():
        return int(length)
    if stream:
        return None
    return len(response.content)


class TrackedSession(requests.Session):
    """
    requests.Session that records descriptors into a correlator.

    Attributes:
        correlator: Destination for descriptors
        screen: Fixed screen for every request (None = current screen)
    """

    def __init__(
        self,
        correlator: NetworkCorrelator,
        screen: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.correlator = correlator
        self.screen = screen

    def request(self, method, url, *args, **kwargs):
        stream = bool(kwargs.get("stream", False))
        start_ms = _epoch_ms()

        try:
            response = super().request(method, url, *args, **kwargs)
        except requests.RequestException as e:
            end_ms = _epoch_ms()
            self._record(NetworkDescriptor(
                method=str(method).upper(),
                url=str(url),
                status_code=-1,
                start_time_ms=start_ms,
                end_time_ms=end_ms,
                duration_ms=max(0.0, end_ms - start_ms),
                error_message=str(e) or type(e).__name__,
            ))
            raise

        end_ms = _epoch_ms()
        self._record(NetworkDescriptor(
            method=str(method).upper(),
            url=response.url or str(url),
            status_code=response.status_code,
            start_time_ms=start_ms,
            end_time_ms=end_ms,
            duration_ms=max(0.0, end_ms - start_ms),
            payload_size=_payload_size(response, stream),
            content_type=response.headers.get("Content-Type"),
            response_type="stream" if stream else "bytes",
            server_time_ms=parse_response_time(response.headers.get("x-response-time")),
        ))
        return response

    def _record(self, descriptor: NetworkDescriptor) -> None:
        if self.screen is not None:
            self.correlator.add_request(self.screen, descriptor)
        else:
            self.correlator.add_to_current_screen(descriptor)
