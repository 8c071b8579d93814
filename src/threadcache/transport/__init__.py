"""Transport boundary: the abstract contract and the HTTP adapter."""

from .base import Transport
from .http import HttpTransport

__all__ = ["HttpTransport", "Transport"]
