from .http_client import (
    RequestsHttpClient,
    create_release_client,
    create_server_client,
    proxy_applies,
    proxy_url,
)
from .protocols import HttpClientConfig, HttpClientProtocol

__all__ = [
    "RequestsHttpClient",
    "HttpClientConfig",
    "HttpClientProtocol",
    "create_release_client",
    "create_server_client",
    "proxy_applies",
    "proxy_url",
]
