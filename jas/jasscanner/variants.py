"""
Scan variants + executor
------------------------
variant(IaC, secrets, applicability)는 설정 값일 뿐이고, 실제 실행 순서는 ScanExecutor 하나가 담당합니다.

실행 순서:
    지원 여부 확인 → 취소 확인 → entitlement 확인(skip 가능) → 바이너리 준비(실패 시 전파)
    → 취소 확인 → 입력 작성 → 프로세스 실행 → 결과 파싱 → 임시 리소스 정리(항상)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from jas.jasscanner import distribution as platforms
from jas.jasscanner.cancellation import CancellationToken
from jas.jasscanner.clients.protocols import HttpClientProtocol
from jas.jasscanner.entitlement import EntitlementGate
from jas.jasscanner.environment import CredentialEnvironmentBuilder
from jas.jasscanner.interfaces import (
    ExecutionResult,
    ExecutionStatus,
    OutcomeStatus,
    PackageType,
    ScanCanceledError,
    ScannerSettings,
    ScanRequest,
    ServerConfig,
    UnsupportedPackageTypeError,
    UnsupportedPlatformError,
)
from jas.jasscanner.logger import get_logger
from jas.jasscanner.process import ProcessRunner
from jas.jasscanner.provisioner import BinaryProvisioner
from jas.jasscanner.run_input import RunInputWriter, ScanWorkspace
from jas.jasscanner.sarif import ResultParser

logger = get_logger("variants")

DEFAULT_DOWNLOAD_PATH = "ide-scanners/{name}/v1/[RELEASE]/{distribution}/{binary}"


def supports_all(package_type: PackageType) -> bool:
    return True


def supports_only(*types: PackageType) -> Callable[[PackageType], bool]:
    allowed: FrozenSet[PackageType] = frozenset(types)

    def predicate(package_type: PackageType) -> bool:
        return package_type in allowed

    return predicate


@dataclass(frozen=True)
class ScanVariant:
    name: str
    scan_type: str
    args: Tuple[str, ...]
    feature: str
    binary_name: str
    supports: Callable[[PackageType], bool] = field(default=supports_all, compare=False)
    download_path: str = DEFAULT_DOWNLOAD_PATH

    def binary_file_name(self, distribution: str) -> str:
        return platforms.executable_name(self.binary_name, distribution)

    def relative_download_path(self, distribution: str) -> str:
        return self.download_path.format(
            name=self.name,
            distribution=distribution,
            binary=self.binary_file_name(distribution),
        )


# TODO: the IaC scanner also shipped a variant driven by a "run with config file"
# argument convention; only the explicit scan-type form is supported here.
IAC = ScanVariant(
    name="iac",
    scan_type="iac-scan-modules",
    args=("iac",),
    feature="iac_scanners",
    binary_name="iac_scanner",
)

SECRETS = ScanVariant(
    name="secrets",
    scan_type="secrets-scan",
    args=("sec",),
    feature="secrets_detection",
    binary_name="secrets_scanner",
)

APPLICABILITY = ScanVariant(
    name="applicability",
    scan_type="analyze-applicability",
    args=("ca",),
    feature="contextual_analysis",
    binary_name="applicability_scanner",
    supports=supports_only(PackageType.NPM, PackageType.YARN, PackageType.PYPI),
)

VARIANTS: Dict[str, ScanVariant] = {v.name: v for v in (IAC, SECRETS, APPLICABILITY)}


def get_variant(name: str) -> ScanVariant:
    try:
        return VARIANTS[name.lower()]
    except KeyError:
        raise KeyError(f"Unknown scan variant '{name}'. Available: {', '.join(VARIANTS)}") from None


class ScanExecutor:
    """Runs one scan variant end to end."""

    def __init__(
        self,
        variant: ScanVariant,
        settings: Optional[ScannerSettings] = None,
        server: Optional[ServerConfig] = None,
        *,
        http_client: Optional[HttpClientProtocol] = None,
        download_url: Optional[str] = None,
        distribution: Optional[str] = None,
        gate: Optional[EntitlementGate] = None,
        provisioner: Optional[BinaryProvisioner] = None,
        env_builder: Optional[CredentialEnvironmentBuilder] = None,
        runner: Optional[ProcessRunner] = None,
        parser: Optional[ResultParser] = None,
        writer: Optional[RunInputWriter] = None,
    ) -> None:
        self.variant = variant
        self.settings = settings or ScannerSettings()
        self.server = server
        self.gate = gate or EntitlementGate(
            min_version=self.settings.min_entitlement_version,
            http_client=http_client,
            timeout=self.settings.http_timeout,
        )
        self.env_builder = env_builder or CredentialEnvironmentBuilder()
        self.runner = runner or ProcessRunner()
        self.parser = parser or ResultParser()
        self.writer = writer or RunInputWriter()

        self.platform_error: Optional[UnsupportedPlatformError] = None
        self.provisioner = provisioner
        if self.provisioner is None:
            try:
                dist = distribution or platforms.current_distribution()
            except UnsupportedPlatformError as exc:
                # 이 variant 는 프로세스 생애 동안 비활성화
                logger.info(exc.message)
                self.platform_error = exc
            else:
                self.provisioner = BinaryProvisioner(
                    self.settings.binaries_dir / variant.binary_file_name(dist),
                    download_url or self._release_url(dist),
                    http_client=http_client,
                    server=self.server,
                    timeout=self.settings.http_timeout,
                    update_interval=timedelta(seconds=self.settings.update_interval_seconds),
                )

    def _release_url(self, dist: str) -> str:
        return self.settings.release_url.rstrip("/") + "/" + self.variant.relative_download_path(dist)

    def is_package_type_supported(self, package_type: PackageType) -> bool:
        return self.variant.supports(package_type)

    def execute(
        self,
        request: ScanRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> ExecutionResult:
        name = self.variant.name
        if not self.is_package_type_supported(request.package_type):
            raise UnsupportedPackageTypeError(
                f"{name} scan does not support {request.package_type.value} projects",
                error_code="UNSUPPORTED_PACKAGE_TYPE",
            )

        cancel = cancel or CancellationToken()
        if cancel.is_canceled:
            return ExecutionResult(name, ExecutionStatus.CANCELED, reason="canceled before start")

        if self.platform_error is not None:
            return ExecutionResult(name, ExecutionStatus.SKIPPED, reason=self.platform_error.message)

        if not self.gate.should_run(self.variant.feature, self.server):
            return ExecutionResult(name, ExecutionStatus.SKIPPED, reason="not entitled")

        binary = self.provisioner.ensure()

        if cancel.is_canceled:
            return ExecutionResult(name, ExecutionStatus.CANCELED, reason="canceled after provisioning")

        env = self.env_builder.build(self.server)
        with ScanWorkspace(self.writer) as workspace:
            workspace.write_input(request, self.variant.scan_type)
            try:
                outcome = self.runner.run(
                    binary,
                    [*self.variant.args, str(workspace.input_path)],
                    workspace.work_dir,
                    env,
                    cancel=cancel,
                    timeout=self.settings.process_timeout,
                )
            except ScanCanceledError:
                logger.info("%s scan canceled; scanner process terminated.", name)
                return ExecutionResult(name, ExecutionStatus.CANCELED, reason="canceled while running")

            if outcome.status == OutcomeStatus.NOT_ENTITLED:
                logger.debug("User not entitled for %s scan", name)
                return ExecutionResult(name, ExecutionStatus.SKIPPED, reason="not entitled")

            warnings = self.parser.parse(workspace.output_path)

        logger.info("%s scan finished with %d warnings", name, len(warnings))
        return ExecutionResult(name, ExecutionStatus.SUCCESS, warnings=warnings)
