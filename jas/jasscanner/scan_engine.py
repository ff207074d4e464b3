"""
Scanner 엔진
-------------
ScanRequest 하나를 여러 variant(IaC, secrets, applicability)에 대해 실행하고
결과를 ScanReport 로 모읍니다.

- 동시 실행 수는 고정된 작은 worker pool(기본 3)로 제한합니다.
- 한 variant 의 실패/skip 은 다른 variant 실행을 막지 않습니다.
- 호출 스레드를 스캔 시간 동안 블록하므로 UI 스레드에서 호출하면 안 됩니다.
"""

from __future__ import annotations

import logging
import traceback
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from importlib import metadata as importlib_metadata

from jas.jasscanner.cancellation import CancellationToken
from jas.jasscanner.finding import create_scan_report, create_variant_result
from jas.jasscanner.interfaces import (
    ExecutionStatus,
    ScannerSettings,
    ScanReport,
    ScanRequest,
    SecurityWarning,
    ServerConfig,
    UnsupportedPackageTypeError,
    VariantError,
    VariantResult,
)
from jas.jasscanner.logger import get_logger
from jas.jasscanner.variants import VARIANTS, ScanExecutor, ScanVariant

DEFAULT_SCANNER_VERSION = "0.1.0"


class Scanner:
    """
    Scanner: variant 실행을 오케스트레이션 하고 최종 ScanReport 생성

    - settings(선택): ScannerSettings
    - server(선택): ServerConfig (없으면 entitlement 단계에서 모두 skip)
    - variants(선택): 실행할 ScanVariant 리스트 (기본: 전체)
    - on_warning(선택): SecurityWarning 단위 콜백
    """
    def __init__(
        self,
        settings: Optional[ScannerSettings] = None,
        server: Optional[ServerConfig] = None,
        *,
        variants: Optional[Sequence[ScanVariant]] = None,
        executors: Optional[Sequence[ScanExecutor]] = None,
        max_workers: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        on_warning: Optional[Callable[[SecurityWarning], None]] = None,
    ) -> None:
        self.settings = settings or ScannerSettings()
        self.server = server
        self.logger = logger or get_logger("scanner")
        self.on_warning = on_warning
        self.max_workers = max_workers or self.settings.max_workers

        if executors is not None:
            self.executors: List[ScanExecutor] = list(executors)
        else:
            chosen = list(variants) if variants else list(VARIANTS.values())
            self.executors = [ScanExecutor(v, self.settings, self.server) for v in chosen]

        self._scanner_version = self._resolve_version()
        self.logger.debug(
            "Scanner initialized. variants=%s, workers=%d",
            [e.variant.name for e in self.executors],
            self.max_workers,
        )

    def scan(self, request: ScanRequest, cancel: Optional[CancellationToken] = None) -> ScanReport:
        cancel = cancel or CancellationToken()
        scan_id = f"scan-{uuid.uuid4().hex}"
        start_time = datetime.now()
        self.logger.info("Starting scan %s for %s", scan_id, ", ".join(request.roots) or "-")

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="jas-scan") as pool:
            futures = [
                pool.submit(self._run_executor, executor, request, cancel)
                for executor in self.executors
            ]
            # 제출 순서(= variant 순서) 유지
            variant_results = [future.result() for future in futures]

        for result in variant_results:
            self._emit_warnings(result.warnings)

        report = create_scan_report(
            scan_id=scan_id,
            roots=list(request.roots),
            scanner_version=self._scanner_version,
            start_time=start_time,
            end_time=datetime.now(),
            variant_results=variant_results,
        )
        self.logger.info(
            "Scan completed in %.2fs (%d variants, %d warnings).",
            report.duration_seconds,
            len(variant_results),
            report.summary.total_warnings,
        )
        return report

    def _run_executor(
        self,
        executor: ScanExecutor,
        request: ScanRequest,
        cancel: CancellationToken,
    ) -> VariantResult:
        name = executor.variant.name
        start_time = datetime.now()
        try:
            result = executor.execute(request, cancel)
        except UnsupportedPackageTypeError as exc:
            self.logger.debug("Variant '%s' skipped: %s", name, exc.message)
            return create_variant_result(
                name, ExecutionStatus.SKIPPED, start_time, metadata={"reason": exc.message}
            )
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.exception("Variant '%s' failed: %s", name, exc)
            return self._failure_result(name, exc, start_time)

        metadata: Dict[str, str] = {"reason": result.reason} if result.reason else {}
        return create_variant_result(
            name, result.status, start_time, warnings=result.warnings, metadata=metadata
        )

    def _failure_result(self, name: str, exc: Exception, start_time: datetime) -> VariantResult:
        context = dict(getattr(exc, "context", {}) or {})
        stderr = getattr(exc, "stderr", None)
        if stderr:
            context["stderr"] = stderr
        err = VariantError(
            error_type=type(exc).__name__,
            message=str(exc),
            context=context,
        )
        return create_variant_result(
            name,
            ExecutionStatus.FAILED,
            start_time,
            error=err,
            metadata={"traceback": traceback.format_exc()},
        )

    def _emit_warnings(self, warnings: List[SecurityWarning]) -> None:
        if not self.on_warning:
            return
        for warning in warnings:
            try:
                self.on_warning(warning)
            except Exception:  # pylint: disable=broad-except
                self.logger.exception("on_warning callback raised.")

    def _resolve_version(self) -> str:
        try:
            return importlib_metadata.version("jas")
        except Exception:  # pragma: no cover - metadata lookup failure
            return DEFAULT_SCANNER_VERSION
