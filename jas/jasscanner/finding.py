"""
Result 처리 모듈
variant 실행 결과(ExecutionResult)를 받아서
리포트 단계에 필요한 객체를 생성하는 함수들입니다.

Args & Returns Types:
- create_variant_result -> VariantResult
- create_scan_summary -> ScanSummary
- create_scan_report -> ScanReport
"""

from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from jas.jasscanner.interfaces import (
    ExecutionStatus,
    ScanReport,
    ScanSummary,
    SecurityWarning,
    Severity,
    VariantError,
    VariantResult,
)


def create_variant_result(
    variant: str,
    status: ExecutionStatus,
    start_time: datetime,
    warnings: Optional[List[SecurityWarning]] = None,
    end_time: Optional[datetime] = None,
    error: Optional[VariantError] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> VariantResult:
    """
    variant 실행 정보를 받아 VariantResult를 생성합니다.

    Args:
        variant: variant 이름 (iac, secrets, applicability)
        status: 실행 상태
        start_time: 실행 시작 시간
        warnings: 발견된 경고 리스트
        end_time: 실행 종료 시간 (None이면 현재 시간 사용)
        error: 발생한 에러 (있는 경우)
        metadata: 추가 메타데이터 (skip 사유 등)

    Returns:
        VariantResult: 생성된 variant 실행 결과
    """
    if end_time is None:
        end_time = datetime.now()

    return VariantResult(
        variant=variant,
        status=status,
        warnings=list(warnings or []),
        start_time=start_time,
        end_time=end_time,
        duration_seconds=(end_time - start_time).total_seconds(),
        error=error,
        metadata=metadata or {},
    )


def create_scan_summary(variant_results: List[VariantResult]) -> ScanSummary:
    all_warnings: List[SecurityWarning] = []
    for result in variant_results:
        all_warnings.extend(result.warnings)

    # 심각도별 카운트
    severity_counts: Dict[Severity, int] = Counter(w.severity for w in all_warnings)

    return ScanSummary(
        total_warnings=len(all_warnings),
        severity_counts=dict(severity_counts),
        variant_counts={r.variant: len(r.warnings) for r in variant_results},
        failed_variants=sum(1 for r in variant_results if r.status == ExecutionStatus.FAILED),
        skipped_variants=sum(1 for r in variant_results if r.status == ExecutionStatus.SKIPPED),
    )


def create_scan_report(
    scan_id: str,
    roots: List[str],
    scanner_version: str,
    start_time: datetime,
    end_time: datetime,
    variant_results: List[VariantResult],
) -> ScanReport:
    """
    VariantResult 리스트와 스캔 메타데이터를 받아 ScanReport를 생성합니다.
    """
    return ScanReport(
        scan_id=scan_id,
        roots=list(roots),
        scanner_version=scanner_version,
        start_time=start_time,
        end_time=end_time,
        duration_seconds=(end_time - start_time).total_seconds(),
        variant_results=variant_results,
        summary=create_scan_summary(variant_results),
    )
