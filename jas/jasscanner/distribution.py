"""
Platform resolution
-------------------
OS 이름 + CPU 아키텍처를 바이너리 배포 식별자(distribution id)로 변환합니다.
순수 함수이며 I/O가 없습니다. 현재 호스트 값은 프로세스 생애 동안 한 번만 계산합니다.
"""

from __future__ import annotations

import functools
import platform
from typing import Dict, Tuple

from jas.jasscanner.interfaces import UnsupportedPlatformError

WINDOWS = "windows"
MAC = "mac"
LINUX = "linux"

# platform.system() / sys.platform 양쪽 표기를 모두 허용
_OS_ALIASES: Dict[str, str] = {
    "windows": WINDOWS,
    "win32": WINDOWS,
    "cygwin": WINDOWS,
    "darwin": MAC,
    "mac": MAC,
    "macos": MAC,
    "linux": LINUX,
    "linux2": LINUX,
}

_WINDOWS_ARCHS = {"amd64", "x86_64", "x64", "x86", "i386", "i686"}

_MAC_ARCHS: Dict[str, str] = {
    "arm64": "mac-arm64",
    "aarch64": "mac-arm64",
    "x86_64": "mac-amd64",
    "amd64": "mac-amd64",
    "x64": "mac-amd64",
}

_LINUX_ARCHS: Dict[str, str] = {
    "i386": "linux-386",
    "i486": "linux-386",
    "i586": "linux-386",
    "i686": "linux-386",
    "i786": "linux-386",
    "x86": "linux-386",
    "amd64": "linux-amd64",
    "x86_64": "linux-amd64",
    "x64": "linux-amd64",
    "arm": "linux-arm",
    "armv7l": "linux-arm",
    "aarch64": "linux-arm64",
    "arm64": "linux-arm64",
    "s390x": "linux-s390x",
    "ppc64": "linux-ppc64",
    "ppc64le": "linux-ppc64le",
}


def normalize_os(os_name: str) -> str:
    return _OS_ALIASES.get((os_name or "").strip().lower(), (os_name or "").strip().lower())


def resolve(os_name: str, arch: str) -> str:
    """Map an (os, arch) pair onto the distribution id used in download paths.

    Raises:
        UnsupportedPlatformError: the pair is outside the supported matrix.
    """
    family = normalize_os(os_name)
    machine = (arch or "").strip().lower()

    if family == WINDOWS and machine in _WINDOWS_ARCHS:
        return "windows-amd64"
    if family == MAC and machine in _MAC_ARCHS:
        return _MAC_ARCHS[machine]
    if family == LINUX and machine in _LINUX_ARCHS:
        return _LINUX_ARCHS[machine]

    raise UnsupportedPlatformError(os_name, arch)


def supported_matrix() -> Tuple[Tuple[str, str], ...]:
    pairs = [(WINDOWS, arch) for arch in sorted(_WINDOWS_ARCHS)]
    pairs += [(MAC, arch) for arch in _MAC_ARCHS]
    pairs += [(LINUX, arch) for arch in _LINUX_ARCHS]
    return tuple(pairs)


@functools.lru_cache(maxsize=1)
def current_distribution() -> str:
    return resolve(platform.system(), platform.machine())


def executable_name(binary_name: str, distribution: str) -> str:
    if distribution.startswith(WINDOWS) and not binary_name.endswith(".exe"):
        return binary_name + ".exe"
    return binary_name
