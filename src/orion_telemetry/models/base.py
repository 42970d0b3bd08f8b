"""
Beacon Model Base
=================

Shared pydantic configuration for every model that ends up on the wire.

Fields are declared in snake_case and serialised in camelCase, which is the
format the mobile backend expects. Models are immutable once built.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class BeaconModel(BaseModel):
    """Immutable camelCase model used for all outbound payloads."""

    class Config:
        """Pydantic model configuration."""

        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    def to_payload(self) -> dict:
        """Serialise to the compact JSON-ready dict sent to transports."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
