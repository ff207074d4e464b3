"""
HTTP 클라이언트 인터페이스

entitlement 조회(GET), 체크섬 확인(HEAD), 바이너리 다운로드(GET stream) 가
테스트에서 교체 가능하도록 최소한의 메서드만 정의합니다.
구현체는 http_client.py 의 RequestsHttpClient.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


class HttpClientProtocol(Protocol):
    """entitlement / provisioner 가 사용하는 HTTP 호출 인터페이스"""

    def request(self, method: str, url: str, **kwargs) -> Any: ...
    def get(self, url: str, **kwargs) -> Any: ...
    def head(self, url: str, **kwargs) -> Any: ...

    def close(self) -> None: ...


@dataclass
class HttpClientConfig:
    # 연결 실패 시 재시도 횟수 (backoff * 2^n 초 대기)
    retry: int = 1
    backoff: float = 0.2
    timeout: Optional[float] = None
    verify_ssl: bool = True
    allow_redirects: bool = True
    base_headers: Dict[str, str] = field(default_factory=dict)
    proxies: Dict[str, str] = field(default_factory=dict)
    auth: Optional[Any] = None


__all__ = [
    "HttpClientProtocol",
    "HttpClientConfig",
]
