"""
Network Correlator
==================

Per-screen bounded buffer of outbound request descriptors.

The HTTP-client collaborator pushes one descriptor per completed request,
tagged either with an explicit screen or with the "current" screen. When a
screen finalizes, its buffer is drained exactly once into the beacon.

Design Rules:
    - At most `max_requests_per_screen` descriptors per screen
    - Once full, further descriptors are dropped (no eviction)
    - URLs are capped before storage: scheme, host and path are kept,
      credentials and fragment dropped, query truncated
    - A single lock guards every buffer; writers may run on any thread
"""

import logging
import threading
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from orion_telemetry.models.network import NetworkDescriptor


logger = logging.getLogger(__name__)


def cap_url(url: str, max_query_length: int = 50) -> str:
    """
    Shorten a URL for storage.

    Args:
        url: Raw request URL
        max_query_length: Maximum characters kept from the query string

    Returns:
        scheme://host[:port]/path[?query[:max_query_length]]. Relative URLs
        keep their path. Input that cannot be parsed is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    host = parts.netloc.rpartition("@")[2]

    if parts.scheme and host:
        capped = f"{parts.scheme}://{host}{parts.path}"
    elif host:
        capped = f"//{host}{parts.path}"
    else:
        capped = parts.path

    if parts.query and max_query_length > 0:
        capped = f"{capped}?{parts.query[:max_query_length]}"

    return capped


class NetworkCorrelator:
    """
    Thread-safe store of request descriptors keyed by screen.

    Attributes:
        max_requests_per_screen: Per-screen cap
        max_query_length: Query characters kept by cap_url

    Example:
        correlator = NetworkCorrelator()
        correlator.set_current_screen("Feed")

        correlator.add_to_current_screen(descriptor)
        ...
        requests = correlator.consume_for_screen("Feed")
    """

    def __init__(
        self,
        max_requests_per_screen: int = 150,
        max_query_length: int = 50,
    ) -> None:
        if max_requests_per_screen < 1:
            raise ValueError("max_requests_per_screen must be >= 1")
        if max_query_length < 0:
            raise ValueError("max_query_length must be >= 0")

        self.max_requests_per_screen = max_requests_per_screen
        self.max_query_length = max_query_length

        self._lock = threading.Lock()
        self._buffers: Dict[str, List[NetworkDescriptor]] = {}
        self._current_screen: Optional[str] = None
        self._overflowing: set = set()

        self._total_added: int = 0
        self._dropped_count: int = 0
        self._consumed_count: int = 0

    # -------------------------------------------------------------------------
    # Current screen
    # -------------------------------------------------------------------------

    @property
    def current_screen(self) -> Optional[str]:
        with self._lock:
            return self._current_screen

    def set_current_screen(self, screen: Optional[str]) -> None:
        """Set the screen that untagged descriptors are attributed to."""
        with self._lock:
            self._current_screen = screen

    # -------------------------------------------------------------------------
    # Intake
    # -------------------------------------------------------------------------

    def add_request(self, screen: str, descriptor: NetworkDescriptor) -> bool:
        """
        Append a descriptor to a screen's buffer.

        Args:
            screen: Screen the request belongs to
            descriptor: Observed request

        Returns:
            True if stored, False if the screen is at capacity.
        """
        capped = descriptor.model_copy(
            update={"url": cap_url(descriptor.url, self.max_query_length)}
        )

        with self._lock:
            buffer = self._buffers.setdefault(screen, [])

            if len(buffer) >= self.max_requests_per_screen:
                self._dropped_count += 1
                warn = screen not in self._overflowing
                self._overflowing.add(screen)
            else:
                buffer.append(capped)
                self._total_added += 1
                return True

        if warn:
            logger.warning(
                f"[{screen}] Network buffer full "
                f"({self.max_requests_per_screen}), dropping further requests"
            )
        return False

    def add_to_current_screen(self, descriptor: NetworkDescriptor) -> bool:
        """
        Append a descriptor to the current screen.

        Returns:
            False when there is no current screen or it is at capacity.
        """
        screen = self.current_screen
        if screen is None:
            logger.debug(f"No current screen, ignoring {descriptor.method} request")
            return False
        return self.add_request(screen, descriptor)

    # -------------------------------------------------------------------------
    # Drain / housekeeping
    # -------------------------------------------------------------------------

    def consume_for_screen(self, screen: str) -> List[NetworkDescriptor]:
        """
        Remove and return all descriptors for a screen.

        Returns:
            Descriptors in insertion order (empty list if none).
        """
        with self._lock:
            buffer = self._buffers.pop(screen, [])
            self._overflowing.discard(screen)
            self._consumed_count += len(buffer)

        if buffer:
            logger.debug(f"[{screen}] Drained {len(buffer)} network requests")
        return buffer

    def clear_screen(self, screen: str) -> None:
        with self._lock:
            self._buffers.pop(screen, None)
            self._overflowing.discard(screen)

    def clear_all(self) -> None:
        with self._lock:
            self._buffers.clear()
            self._overflowing.clear()

    def request_count(self, screen: str) -> int:
        with self._lock:
            return len(self._buffers.get(screen, ()))

    def tracked_screens(self) -> List[str]:
        with self._lock:
            return [screen for screen, buffer in self._buffers.items() if buffer]

    def metrics(self) -> dict:
        """
        Get correlator metrics for observability.

        Returns:
            Dict with buffered counts and lifetime totals
        """
        with self._lock:
            return {
                "current_screen": self._current_screen,
                "screens_buffered": sum(1 for b in self._buffers.values() if b),
                "requests_buffered": sum(len(b) for b in self._buffers.values()),
                "total_added": self._total_added,
                "dropped_count": self._dropped_count,
                "consumed_count": self._consumed_count,
            }
