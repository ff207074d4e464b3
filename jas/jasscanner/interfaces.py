from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

# ============================================================================
# Enum Types
# ============================================================================

class Severity(str, Enum):
    """심각도 레벨"""
    UNKNOWN = "UNKNOWN"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PackageType(str, Enum):
    """스캔 대상 프로젝트의 패키지 매니저 타입"""
    GENERIC = "GENERIC"
    NPM = "NPM"
    YARN = "YARN"
    PYPI = "PYPI"
    MAVEN = "MAVEN"
    GRADLE = "GRADLE"
    GO = "GO"


class OutcomeStatus(str, Enum):
    """바이너리 프로세스 종료 분류"""
    SUCCESS = "SUCCESS"
    NOT_ENTITLED = "NOT_ENTITLED"
    FAILED = "FAILED"


class ExecutionStatus(str, Enum):
    """단일 variant 실행 결과 상태"""
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


# ============================================================================
# Input Types (입력 타입)
# ============================================================================

@dataclass(frozen=True)
class ScanRequest:
    """바이너리에 전달되는 단일 스캔 요청"""
    roots: Tuple[str, ...] = ()
    cves: Tuple[str, ...] = ()
    output: Optional[str] = None
    scan_type: Optional[str] = None
    skipped_folders: Tuple[str, ...] = ()
    package_type: PackageType = PackageType.GENERIC

    def __post_init__(self):
        # list로 넘어와도 불변 tuple로 고정
        object.__setattr__(self, "roots", tuple(self.roots))
        object.__setattr__(self, "cves", tuple(self.cves))
        object.__setattr__(self, "skipped_folders", tuple(self.skipped_folders))

    def with_output(self, output: str, scan_type: str) -> "ScanRequest":
        return replace(self, output=output, scan_type=scan_type)


@dataclass(frozen=True)
class ScanBatch:
    """디스크에 기록되는 descriptor 단위 (현재는 항상 요청 1개)"""
    scans: Tuple[ScanRequest, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "scans", tuple(self.scans))


# ============================================================================
# Configuration Types (설정 타입)
# ============================================================================

@dataclass(frozen=True)
class ProxyConfig:
    """프록시 설정"""
    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    no_proxy: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ServerConfig:
    """JFrog 플랫폼 접속 정보"""
    url: Optional[str] = None
    xray_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    access_token: Optional[str] = None
    proxy: Optional[ProxyConfig] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.url) and (
            bool(self.access_token) or bool(self.username and self.password)
        )

    def resolve_xray_url(self) -> Optional[str]:
        if self.xray_url:
            return self.xray_url.rstrip("/")
        if self.url:
            return self.url.rstrip("/") + "/xray"
        return None

    def __repr__(self) -> str:
        # 자격증명은 repr에 노출하지 않음
        return (
            f"ServerConfig(url={self.url!r}, xray_url={self.xray_url!r}, "
            f"username={self.username!r}, token={'***' if self.access_token else None})"
        )


@dataclass(frozen=True)
class ScannerSettings:
    """스캐너 엔진 동작 설정"""
    binaries_dir: Path = Path.home() / ".jas" / "dependencies" / "jfrog-security"
    release_url: str = "https://releases.jfrog.io/artifactory/"
    update_interval_seconds: float = 24 * 60 * 60
    process_timeout: Optional[float] = None
    max_workers: int = 3
    min_entitlement_version: str = "3.66.0"
    http_timeout: float = 30.0


# ============================================================================
# Execution Types (실행 타입)
# ============================================================================

@dataclass
class EntitlementState:
    """entitlement 판단 결과. 실행마다 새로 계산됨"""
    feature: str
    min_version: str
    server_version: Optional[str] = None
    decision: bool = False
    checked_at: datetime = field(default_factory=datetime.now)


@dataclass
class BinaryState:
    """variant 별 바이너리 상태. 경로 단위 lock 안에서만 변경"""
    target_path: Path
    checksum: Optional[str] = None
    next_update_check: Optional[datetime] = None


@dataclass(frozen=True)
class ProcessOutcome:
    """프로세스 종료 결과"""
    exit_code: int
    status: OutcomeStatus
    stdout: str = ""
    stderr: str = ""


# ============================================================================
# Result Types (결과 타입)
# ============================================================================

@dataclass(frozen=True)
class SecurityWarning:
    """바이너리가 보고한 개별 경고"""
    file_path: str
    line_start: int
    col_start: int
    line_end: int
    col_end: int
    severity: Severity
    rule_id: str
    line_snippet: str = ""
    reporter: str = ""
    reason: str = ""
    applicable: Optional[bool] = None
    level: Optional[str] = None


@dataclass(frozen=True)
class ExecutionResult:
    """ScanExecutor.execute 반환값"""
    variant: str
    status: ExecutionStatus
    warnings: List[SecurityWarning] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass(frozen=True)
class VariantError:
    """variant 실행 에러 정보"""
    error_type: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VariantResult:
    """Scanner 리포트에 들어가는 variant 단위 결과"""
    variant: str
    status: ExecutionStatus
    warnings: List[SecurityWarning] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    error: Optional[VariantError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScanSummary:
    """스캔 결과 요약"""
    total_warnings: int = 0
    severity_counts: Dict[Severity, int] = field(default_factory=dict)
    variant_counts: Dict[str, int] = field(default_factory=dict)
    failed_variants: int = 0
    skipped_variants: int = 0


@dataclass(frozen=True)
class ScanReport:
    """전체 스캔 리포트"""
    scan_id: str
    roots: List[str]
    scanner_version: str
    start_time: datetime
    end_time: datetime
    duration_seconds: float
    variant_results: List[VariantResult] = field(default_factory=list)
    summary: Optional[ScanSummary] = None


# ============================================================================
# Error Types (에러 타입)
# ============================================================================

class JasException(Exception):
    """모든 jas 예외의 베이스 클래스"""
    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.timestamp = datetime.now()
        self.context = context or {}


class UnsupportedPlatformError(JasException):
    """지원하지 않는 OS/아키텍처"""
    def __init__(self, os_name: str, arch: str):
        super().__init__(
            f"Unsupported OS: {os_name}-{arch}",
            error_code="UNSUPPORTED_PLATFORM",
            context={"os": os_name, "arch": arch},
        )


class EntitlementUnavailableError(JasException):
    """entitlement 확인 불가 (skip 으로 처리)"""
    pass


class DownloadError(JasException):
    """바이너리 다운로드/체크섬 조회 실패"""
    pass


class ProcessExecutionError(JasException):
    """바이너리 실행 실패"""
    def __init__(self, message: str, exit_code: Optional[int] = None, stderr: str = ""):
        super().__init__(
            message,
            error_code="PROCESS_FAILED",
            context={"exit_code": exit_code},
        )
        self.exit_code = exit_code
        self.stderr = stderr


class ProcessTimeoutError(ProcessExecutionError):
    """바이너리 실행 시간 초과"""
    pass


class OutputParseError(JasException):
    """결과 파일 파싱 실패"""
    pass


class ResourceCleanupError(JasException):
    """임시 리소스 정리 실패 (로그만 남김)"""
    pass


class ScanCanceledError(JasException):
    """호출자가 스캔을 취소함"""
    pass


class UnsupportedPackageTypeError(JasException):
    """variant 가 지원하지 않는 패키지 타입"""
    pass


class ConfigurationError(JasException):
    """설정 오류"""
    pass
