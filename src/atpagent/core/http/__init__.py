from .client import get_http_client, post_json
from .errors import AtpHTTPError, AtpHTTPNetworkError, AtpHTTPStatusError

__all__ = [
    "get_http_client",
    "post_json",
    "AtpHTTPError",
    "AtpHTTPNetworkError",
    "AtpHTTPStatusError",
]
