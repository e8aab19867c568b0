"""External services the assistant talks to."""

from availchat.integrations.availability_api import AvailabilityApi, AvailabilityApiError

__all__ = ["AvailabilityApi", "AvailabilityApiError"]
