"""
Subprocess environment with platform credentials and proxy settings.

Values are only ever kept in the returned mapping; nothing is logged apart from
variable names and nothing is written to disk.
"""

from __future__ import annotations

import os
from typing import Dict, Mapping, Optional

from jas.jasscanner.clients.http_client import proxy_applies, proxy_url
from jas.jasscanner.interfaces import ServerConfig
from jas.jasscanner.logger import get_logger

logger = get_logger("environment")

ENV_PLATFORM = "JF_PLATFORM_URL"
ENV_USER = "JF_USER"
ENV_PASSWORD = "JF_PASS"
ENV_ACCESS_TOKEN = "JF_TOKEN"
ENV_HTTP_PROXY = "HTTP_PROXY"
ENV_HTTPS_PROXY = "HTTPS_PROXY"

CREDENTIAL_VARIABLES = (ENV_PLATFORM, ENV_USER, ENV_PASSWORD, ENV_ACCESS_TOKEN)


class CredentialEnvironmentBuilder:
    def __init__(self, base_environ: Optional[Mapping[str, str]] = None) -> None:
        self.base_environ = base_environ

    def build(self, server: Optional[ServerConfig]) -> Dict[str, str]:
        env = dict(os.environ if self.base_environ is None else self.base_environ)
        if server is None or not server.url:
            return env

        # 상속된 값이 다른 인증 방식과 섞이지 않도록 먼저 제거
        for name in CREDENTIAL_VARIABLES:
            env.pop(name, None)

        env[ENV_PLATFORM] = server.url
        if server.access_token:
            env[ENV_ACCESS_TOKEN] = server.access_token
        elif server.username and server.password:
            env[ENV_USER] = server.username
            env[ENV_PASSWORD] = server.password

        if proxy_applies(server, server.url):
            env[ENV_HTTP_PROXY] = proxy_url(server, "http")
            env[ENV_HTTPS_PROXY] = proxy_url(server, "https")

        logger.debug(
            "Scanner environment prepared with %s",
            ", ".join(sorted(name for name in env if name in CREDENTIAL_VARIABLES
                             or name in (ENV_HTTP_PROXY, ENV_HTTPS_PROXY))),
        )
        return env
