"""
Network Descriptor Model
========================

One outbound HTTP request observed while a screen was active.

Produced by the HTTP-client collaborator (see network.requests_adapter),
buffered per screen by the NetworkCorrelator, and embedded in the beacon.

Example:
    {
        "method": "GET",
        "url": "https://api.example.com/feed?page=2",
        "statusCode": 200,
        "startTimeMs": 1770500938284,
        "endTimeMs": 1770500938410,
        "durationMs": 126,
        "payloadSize": 5120,
        "contentType": "application/json"
    }
"""

from typing import Optional

from pydantic import Field

from orion_telemetry.models.base import BeaconModel


class NetworkDescriptor(BeaconModel):
    """
    Descriptor of a single outbound request.

    Attributes:
        method: HTTP method
        url: Request URL (capped by the correlator before storage)
        status_code: HTTP status, -1 when no response was received
        start_time_ms: Epoch ms when the request started
        end_time_ms: Epoch ms when the response (or error) arrived
        duration_ms: end - start
        payload_size: Response body size in bytes, when known
        content_type: Response Content-Type header
        response_type: Client-side decoding hint (json, bytes, stream...)
        error_message: Error text for failed requests
        server_time_ms: Server processing time from x-response-time
    """

    method: str = Field(..., min_length=1)
    url: str = Field(...)
    status_code: int = Field(default=-1, ge=-1)
    start_time_ms: Optional[float] = Field(default=None, ge=0)
    end_time_ms: Optional[float] = Field(default=None, ge=0)
    duration_ms: Optional[float] = Field(default=None, ge=0)
    payload_size: Optional[int] = Field(default=None, ge=0)
    content_type: Optional[str] = Field(default=None)
    response_type: Optional[str] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    server_time_ms: Optional[float] = Field(default=None, ge=0)

    @property
    def failed(self) -> bool:
        """True when the request errored or returned no status."""
        return self.error_message is not None or self.status_code < 0
