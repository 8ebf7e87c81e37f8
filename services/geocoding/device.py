"""
Device location sources.

The backend never sees a device directly: clients report their last GPS fix
(or that the user refused the permission prompt), and the provider reads it
back through a DeviceLocator.
"""

import logging
import threading
import time
from typing import Callable, Protocol

from .errors import LocationPermissionDenied, LocationUnavailable
from .models import Coordinates

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 300  # 5 minutes


class DeviceLocator(Protocol):
    async def locate(self) -> Coordinates: ...


class ReportedDeviceLocation:
    """Holds the most recent client-reported device fix."""

    def __init__(self, max_age: float = DEFAULT_MAX_AGE, clock: Callable[[], float] = time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self._lock = threading.Lock()
        self._coordinates: Coordinates | None = None
        self._reported_at: float | None = None
        self._denied = False

    def report(self, coordinates: Coordinates) -> None:
        """Record a fresh fix from the client"""
        with self._lock:
            self._coordinates = coordinates
            self._reported_at = self._clock()
            self._denied = False

    def report_denied(self) -> None:
        """Record that the user refused location access"""
        with self._lock:
            self._coordinates = None
            self._reported_at = None
            self._denied = True

    def clear(self) -> None:
        with self._lock:
            self._coordinates = None
            self._reported_at = None
            self._denied = False

    async def locate(self) -> Coordinates:
        with self._lock:
            if self._denied:
                raise LocationPermissionDenied("Location permission denied by user")
            if self._coordinates is None or self._reported_at is None:
                raise LocationUnavailable("No device location has been reported")
            age = self._clock() - self._reported_at
            if age > self.max_age:
                logger.debug(f"Discarding stale device fix ({age:.0f}s old)")
                raise LocationUnavailable(f"Device location is stale ({age:.0f}s old)")
            return self._coordinates
