"""
jas.jasscanner 패키지 공개 API

스캐너 바이너리 실행 엔진 (entitlement → 바이너리 준비 → 실행 → SARIF 파싱)
"""

from .cancellation import CancellationToken
from .interfaces import (
    ExecutionResult,
    ExecutionStatus,
    PackageType,
    ScanBatch,
    ScannerSettings,
    ScanReport,
    ScanRequest,
    SecurityWarning,
    ServerConfig,
    Severity,
)
from .scan_engine import Scanner
from .variants import APPLICABILITY, IAC, SECRETS, VARIANTS, ScanExecutor, ScanVariant

__all__ = [
    "CancellationToken",
    "ExecutionResult",
    "ExecutionStatus",
    "PackageType",
    "ScanBatch",
    "ScannerSettings",
    "ScanReport",
    "ScanRequest",
    "SecurityWarning",
    "ServerConfig",
    "Severity",
    "Scanner",
    "ScanExecutor",
    "ScanVariant",
    "VARIANTS",
    "IAC",
    "SECRETS",
    "APPLICABILITY",
]
