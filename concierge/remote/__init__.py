"""Remote responder — HTTP client for the company assistant API."""

from concierge.remote.client import ApiResponse, RemoteResponder
from concierge.remote.connectivity import check_connectivity

__all__ = ["ApiResponse", "RemoteResponder", "check_connectivity"]
