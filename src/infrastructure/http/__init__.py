"""HTTP client infrastructure."""
from infrastructure.http.client import is_success, make_http_session

__all__ = [
    'is_success',
    'make_http_session',
]
