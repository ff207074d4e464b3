"""
HTTP Client (requests 기반)
- requests.Session을 래핑해서 재시도/백오프/타임아웃/SSL 검증/헤더/프록시 일원화
- entitlement 조회, 체크섬 HEAD 요청, 바이너리 다운로드가 모두 이 클라이언트를 공유
"""

from __future__ import annotations

import time
from typing import Dict, Optional
from urllib.parse import urlparse

import requests
from requests import Response, Session, RequestException

from jas.jasscanner.interfaces import ServerConfig
from .protocols import HttpClientProtocol, HttpClientConfig


# requests 기반 구현
class RequestsHttpClient(HttpClientProtocol):
    """
    requests.Session 래퍼.
    - 모든 HTTP 요청을 중앙에서 통제
    - backoff, timeout, SSL, header, proxy, session 재사용 통일
    """

    def __init__(
        self,
        config: Optional[HttpClientConfig] = None,
        session: Optional[Session] = None,
    ):
        self.config = config or HttpClientConfig()
        self.s = session or requests.Session()

        if self.config.base_headers:
            self.s.headers.update(self.config.base_headers)
        if self.config.proxies:
            self.s.proxies.update(self.config.proxies)
        if self.config.auth is not None:
            self.s.auth = self.config.auth

    # 내부: 재시도 래퍼
    def _send_with_retry(self, method: str, url: str, **kwargs) -> Response:
        retry = self.config.retry
        backoff = self.config.backoff

        for attempt in range(retry + 1):
            try:
                merged_kwargs = dict(
                    timeout=self.config.timeout,
                    verify=self.config.verify_ssl,
                    allow_redirects=self.config.allow_redirects,
                )
                merged_kwargs.update(kwargs)

                return self.s.request(method=method, url=url, **merged_kwargs)

            except RequestException:
                if attempt >= retry:
                    raise
                time.sleep(backoff * (2**attempt))

        raise RuntimeError("HTTP request failed unexpectedly")  # 미도달 보호

    # Public API
    def request(self, method: str, url: str, **kwargs) -> Response:
        return self._send_with_retry(method, url, **kwargs)

    def get(self, url: str, **kwargs) -> Response:
        return self.request("GET", url, **kwargs)

    def head(self, url: str, **kwargs) -> Response:
        return self.request("HEAD", url, **kwargs)

    # Context Manager
    def close(self) -> None:
        self.s.close()

    def __enter__(self) -> "RequestsHttpClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def proxy_applies(server: Optional[ServerConfig], target_url: Optional[str]) -> bool:
    """target_url 호스트가 no_proxy 목록에 없을 때만 프록시 적용"""
    proxy = server.proxy if server else None
    if proxy is None or not proxy.host:
        return False
    host = (urlparse(target_url or "").hostname or "").lower()
    for entry in proxy.no_proxy:
        entry = entry.strip().lower().lstrip(".")
        if not entry:
            continue
        if entry == "*" or host == entry or host.endswith("." + entry):
            return False
    return True


def proxy_url(server: ServerConfig, scheme: str) -> Optional[str]:
    """프록시 URL 생성. 사용자/비밀번호가 모두 있을 때만 user:pass@ 형태로 포함"""
    proxy = server.proxy if server else None
    if proxy is None or not proxy.host:
        return None
    address = f"{proxy.host}:{proxy.port}"
    if proxy.username and proxy.password:
        address = f"{proxy.username}:{proxy.password}@{address}"
    return f"{scheme}://{address}"


def _proxies_for(server: Optional[ServerConfig], target_url: Optional[str]) -> Dict[str, str]:
    if not proxy_applies(server, target_url):
        return {}
    return {"http": proxy_url(server, "http"), "https": proxy_url(server, "https")}


def create_server_client(server: ServerConfig, timeout: Optional[float] = None) -> RequestsHttpClient:
    """플랫폼 서버(Xray) 호출용 클라이언트. 토큰 우선, 없으면 basic auth"""
    headers = {}
    auth = None
    if server.access_token:
        headers["Authorization"] = f"Bearer {server.access_token}"
    elif server.username and server.password:
        auth = (server.username, server.password)

    return RequestsHttpClient(
        HttpClientConfig(
            timeout=timeout,
            base_headers=headers,
            auth=auth,
            proxies=_proxies_for(server, server.url),
        )
    )


def create_release_client(
    server: Optional[ServerConfig] = None,
    release_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> RequestsHttpClient:
    """릴리스 저장소 접근용 익명 클라이언트 (서버 프록시 설정만 공유)"""
    return RequestsHttpClient(
        HttpClientConfig(timeout=timeout, proxies=_proxies_for(server, release_url))
    )


__all__ = [
    "HttpClientConfig",
    "RequestsHttpClient",
    "proxy_applies",
    "proxy_url",
    "create_server_client",
    "create_release_client",
]
