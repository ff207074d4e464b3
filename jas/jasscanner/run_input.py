"""
Run input descriptor
--------------------
ScanBatch 를 스캐너 바이너리가 읽는 YAML descriptor 파일로 직렬화합니다.

descriptor 형식:

    scans:
      - type: secrets-scan
        output: /tmp/xxxx/yyyy.sarif
        roots: [/path/to/project]
        cve-whitelist: [CVE-2021-3918]     # 비어있으면 생략
        skipped-folders: [node_modules]    # 비어있으면 생략

ScanWorkspace 는 실행 1회에 필요한 임시 디렉토리(작업 디렉토리 + 결과 파일, 입력 파일)를
만들고, 어떤 경로로 빠져나가든 모두 정리합니다.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from jas.jasscanner.interfaces import ResourceCleanupError, ScanBatch, ScanRequest
from jas.jasscanner.logger import get_logger

logger = get_logger("run_input")

TEMP_PREFIX = "jas-"


def request_to_dict(request: ScanRequest) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "type": request.scan_type,
        "output": request.output,
        "roots": list(request.roots),
    }
    if request.cves:
        data["cve-whitelist"] = list(request.cves)
    if request.skipped_folders:
        data["skipped-folders"] = list(request.skipped_folders)
    return data


def batch_to_dict(batch: ScanBatch) -> Dict[str, List[Dict[str, Any]]]:
    return {"scans": [request_to_dict(req) for req in batch.scans]}


class RunInputWriter:
    """Writes a ScanBatch to a fresh temporary YAML file; the caller cleans up."""

    def write(self, batch: ScanBatch, directory: Optional[Path] = None) -> Path:
        if directory is None:
            directory = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
        fd, name = tempfile.mkstemp(dir=str(directory), suffix=".yaml")
        with open(fd, "w", encoding="utf-8") as fh:
            yaml.safe_dump(batch_to_dict(batch), fh, default_flow_style=False, sort_keys=False)
        logger.debug("Run input written to %s (%d scans)", name, len(batch.scans))
        return Path(name)


def remove_tree(path: Optional[Path]) -> None:
    """Delete a temporary directory; failures are logged, never raised."""
    if path is None or not Path(path).exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as exc:
        err = ResourceCleanupError(
            f"Failed to remove temporary directory {path}: {exc}",
            error_code="CLEANUP_FAILED",
        )
        logger.warning(err.message)


class ScanWorkspace:
    """
    실행 1회용 임시 리소스.

    - work_dir: 바이너리의 작업 디렉토리이자 결과(.sarif) 파일 위치
    - input_dir: descriptor(.yaml) 위치
    """

    def __init__(self, writer: Optional[RunInputWriter] = None) -> None:
        self.writer = writer or RunInputWriter()
        self.work_dir: Optional[Path] = None
        self.input_dir: Optional[Path] = None
        self.output_path: Optional[Path] = None
        self.input_path: Optional[Path] = None

    def __enter__(self) -> "ScanWorkspace":
        try:
            self.work_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
            fd, name = tempfile.mkstemp(dir=str(self.work_dir), suffix=".sarif")
            os.close(fd)
            self.output_path = Path(name)
            self.input_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
        except BaseException:
            self.cleanup()
            raise
        return self

    def write_input(self, request: ScanRequest, scan_type: str) -> ScanRequest:
        prepared = request.with_output(str(self.output_path), scan_type)
        self.input_path = self.writer.write(ScanBatch((prepared,)), self.input_dir)
        return prepared

    def cleanup(self) -> None:
        remove_tree(self.work_dir)
        remove_tree(self.input_dir)

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
