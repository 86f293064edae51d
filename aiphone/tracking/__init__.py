"""Call record tracking."""

from .client import CallTrackingClient

__all__ = ['CallTrackingClient']
