# backend/core/deps.py

"""
Common dependencies for the application
"""

from starlette.requests import HTTPConnection

from .exceptions import ServiceUnavailableError


def get_kds_runtime(connection: HTTPConnection):
    """Ticket engine components, for both HTTP and WebSocket endpoints"""
    runtime = getattr(connection.app.state, "kds", None)
    if runtime is None:
        raise ServiceUnavailableError("Kitchen display engine is not running")
    return runtime
