"""
Inbound Event Schemas
=====================

Pydantic models for events pushed to the HTTP service by a host application.

Input Contracts:
    POST /frames
        {"timestampMs": 1532.4, "phase": "build"}

    POST /screens/{screen}/start
        {"manual": false}

    POST /network
        {
            "screen": "HomeScreen",
            "request": {"method": "GET", "url": "https://...", "statusCode": 200}
        }

Guarantees expected from the host:
    - frame timestamps increase monotonically within a session
    - events are posted in the order they happened
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from orion_telemetry.models.network import NetworkDescriptor


class _InboundModel(BaseModel):
    class Config:
        """Pydantic model configuration."""

        alias_generator = to_camel
        populate_by_name = True


class FrameEvent(_InboundModel):
    """
    A frame rendered by the host scheduler.

    Attributes:
        timestamp_ms: Host frame timestamp in milliseconds
        phase: Scheduler phase the frame was produced in
    """

    timestamp_ms: float = Field(
        ...,
        ge=0,
        description="Host frame timestamp (ms), monotonic within a session",
    )

    phase: str = Field(
        default="unknown",
        description="Render phase: idle, animation, microtasks, build, postFrame",
    )

    class Config:
        """Pydantic model configuration."""

        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {"timestampMs": 1532.4, "phase": "build"}
        }


class StartTrackingRequest(_InboundModel):
    """Options for starting a screen session."""

    manual: bool = Field(
        default=False,
        description="Wait for an explicit fully-drawn signal for TTFD",
    )


class NetworkEvent(_InboundModel):
    """A network descriptor, optionally bound to an explicit screen."""

    screen: Optional[str] = Field(
        default=None,
        description="Target screen; defaults to the current screen",
    )

    request: NetworkDescriptor = Field(
        ...,
        description="Observed request",
    )
