"""
설정 로딩
- 환경 변수 → ServerConfig
- JSON/YAML 설정 파일 → ScannerSettings + ServerConfig
설정은 읽기만 하고 저장하지 않음
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from jas.jasscanner.interfaces import (
    ConfigurationError,
    ProxyConfig,
    ScannerSettings,
    ServerConfig,
)

ENV_URL = "JFROG_URL"
ENV_XRAY_URL = "JFROG_XRAY_URL"
ENV_USER = "JFROG_USER"
ENV_PASSWORD = "JFROG_PASSWORD"
ENV_ACCESS_TOKEN = "JFROG_ACCESS_TOKEN"
ENV_PROXY_HOST = "JFROG_PROXY_HOST"
ENV_PROXY_PORT = "JFROG_PROXY_PORT"
ENV_PROXY_USER = "JFROG_PROXY_USER"
ENV_PROXY_PASSWORD = "JFROG_PROXY_PASSWORD"
ENV_NO_PROXY = "NO_PROXY"


def _split_list(value: Optional[str]):
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _port(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid proxy port: {value!r}", error_code="BAD_PROXY_PORT")


def build_proxy_config(data: Optional[Mapping[str, Any]]) -> Optional[ProxyConfig]:
    if not data or not data.get("host"):
        return None
    no_proxy = data.get("no_proxy") or ()
    if isinstance(no_proxy, str):
        no_proxy = _split_list(no_proxy)
    return ProxyConfig(
        host=str(data["host"]),
        port=_port(data.get("port", 8080)),
        username=data.get("username"),
        password=data.get("password"),
        no_proxy=tuple(no_proxy),
    )


def build_server_config(data: Optional[Mapping[str, Any]]) -> Optional[ServerConfig]:
    if not data:
        return None
    return ServerConfig(
        url=data.get("url"),
        xray_url=data.get("xray_url"),
        username=data.get("username"),
        password=data.get("password"),
        access_token=data.get("access_token"),
        proxy=build_proxy_config(data.get("proxy")),
    )


def server_config_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[ServerConfig]:
    env = os.environ if environ is None else environ
    if not env.get(ENV_URL):
        return None

    proxy = None
    if env.get(ENV_PROXY_HOST):
        proxy = ProxyConfig(
            host=env[ENV_PROXY_HOST],
            port=_port(env.get(ENV_PROXY_PORT, "8080")),
            username=env.get(ENV_PROXY_USER),
            password=env.get(ENV_PROXY_PASSWORD),
            no_proxy=_split_list(env.get(ENV_NO_PROXY) or env.get(ENV_NO_PROXY.lower())),
        )

    return ServerConfig(
        url=env[ENV_URL],
        xray_url=env.get(ENV_XRAY_URL),
        username=env.get(ENV_USER),
        password=env.get(ENV_PASSWORD),
        access_token=env.get(ENV_ACCESS_TOKEN),
        proxy=proxy,
    )


def build_settings(data: Optional[Mapping[str, Any]]) -> ScannerSettings:
    defaults = ScannerSettings()
    if not data:
        return defaults
    try:
        return ScannerSettings(
            binaries_dir=Path(data["binaries_dir"]).expanduser() if data.get("binaries_dir") else defaults.binaries_dir,
            release_url=data.get("release_url", defaults.release_url),
            update_interval_seconds=float(data.get("update_interval_seconds", defaults.update_interval_seconds)),
            process_timeout=float(data["process_timeout"]) if data.get("process_timeout") is not None else None,
            max_workers=int(data.get("max_workers", defaults.max_workers)),
            min_entitlement_version=str(data.get("min_entitlement_version", defaults.min_entitlement_version)),
            http_timeout=float(data.get("http_timeout", defaults.http_timeout)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid scanner settings: {exc}", error_code="BAD_SETTINGS") from exc


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config {path}: {e}", error_code="BAD_CONFIG_FILE") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must contain a mapping", error_code="BAD_CONFIG_FILE")
    return data
