"""
Entitlement Gate
----------------
Xray 서버에 질의해서 해당 scan feature를 로컬에서 실행해도 되는지 결정합니다.

- 서버 버전이 최소 기준 이상이면 서버가 이미 기능을 제공하므로 로컬 실행을 건너뜁니다.
- 그보다 낮으면 feature entitlement 플래그를 그대로 따릅니다.
- 연결 실패는 로그만 남기고 False (skip) 로 처리합니다. 다른 기능을 막지 않기 위함입니다.
"""

from __future__ import annotations

from typing import Optional

from requests import RequestException

from jas.jasscanner.clients.http_client import create_server_client
from jas.jasscanner.clients.protocols import HttpClientProtocol
from jas.jasscanner.interfaces import (
    EntitlementState,
    EntitlementUnavailableError,
    ServerConfig,
)
from jas.jasscanner.logger import get_logger
from jas.jasscanner.versions import is_at_least

logger = get_logger("entitlement")

DEFAULT_MIN_VERSION = "3.66.0"
VERSION_ENDPOINT = "api/v1/system/version"
ENTITLEMENT_ENDPOINT = "api/v1/entitlements/feature/{feature}"


class EntitlementGate:
    """Decides per execution whether a scan feature may run locally."""

    def __init__(
        self,
        min_version: str = DEFAULT_MIN_VERSION,
        http_client: Optional[HttpClientProtocol] = None,
        timeout: Optional[float] = 30.0,
    ) -> None:
        self.min_version = min_version
        self.http_client = http_client
        self.timeout = timeout

    def should_run(self, feature: str, server: Optional[ServerConfig]) -> bool:
        return self.check(feature, server).decision

    def check(self, feature: str, server: Optional[ServerConfig]) -> EntitlementState:
        state = EntitlementState(feature=feature, min_version=self.min_version)
        if server is None or not server.is_configured:
            logger.debug("No server configured; skipping feature '%s'.", feature)
            return state

        xray_url = server.resolve_xray_url()
        client = self.http_client or create_server_client(server, timeout=self.timeout)
        try:
            try:
                state.server_version = self._server_version(client, xray_url)
            except EntitlementUnavailableError as exc:
                logger.error(
                    "Couldn't connect to JFrog Xray. Please check your credentials. (%s)",
                    exc.message,
                )
                return state

            if is_at_least(state.server_version, self.min_version):
                logger.debug(
                    "Xray %s >= %s handles '%s' natively; local scan skipped.",
                    state.server_version,
                    self.min_version,
                    feature,
                )
                return state

            try:
                state.decision = self._is_entitled(client, xray_url, feature)
            except EntitlementUnavailableError as exc:
                logger.warning("Entitlement check for '%s' failed: %s", feature, exc.message)
                state.decision = False

            logger.debug("Feature '%s' entitled=%s", feature, state.decision)
            return state
        finally:
            if self.http_client is None:
                client.close()

    def _server_version(self, client: HttpClientProtocol, xray_url: str) -> str:
        payload = self._get_json(client, f"{xray_url}/{VERSION_ENDPOINT}")
        version = payload.get("xray_version") if isinstance(payload, dict) else None
        if not version:
            raise EntitlementUnavailableError(
                "Xray version response has no 'xray_version' field",
                error_code="BAD_VERSION_RESPONSE",
            )
        return str(version)

    def _is_entitled(self, client: HttpClientProtocol, xray_url: str, feature: str) -> bool:
        url = f"{xray_url}/{ENTITLEMENT_ENDPOINT.format(feature=feature)}"
        payload = self._get_json(client, url)
        if not isinstance(payload, dict):
            raise EntitlementUnavailableError(
                "Unexpected entitlement response", error_code="BAD_ENTITLEMENT_RESPONSE"
            )
        return bool(payload.get("entitled", False))

    @staticmethod
    def _get_json(client: HttpClientProtocol, url: str):
        try:
            res = client.get(url)
        except RequestException as exc:
            raise EntitlementUnavailableError(str(exc), error_code="CONNECTION_FAILED") from exc

        if res.status_code != 200:
            raise EntitlementUnavailableError(
                f"GET {url} returned HTTP {res.status_code}",
                error_code="HTTP_ERROR",
                context={"status_code": res.status_code},
            )
        try:
            return res.json()
        except ValueError as exc:
            raise EntitlementUnavailableError(
                f"GET {url} returned invalid JSON", error_code="BAD_JSON"
            ) from exc
