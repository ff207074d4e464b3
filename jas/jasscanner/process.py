"""
Process runner
--------------
스캐너 바이너리를 subprocess 로 실행하고 종료 코드를 분류합니다.

- 0: 성공
- 31: 사용자에게 entitlement 없음 → 빈 결과 (에러 아님)
- 그 외: stderr 를 담은 ProcessExecutionError
취소 토큰과 timeout 은 짧은 주기로 확인하며, 발생하면 프로세스를 종료(terminate → kill)합니다.
"""

from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from jas.jasscanner.cancellation import CancellationToken
from jas.jasscanner.interfaces import (
    OutcomeStatus,
    ProcessExecutionError,
    ProcessOutcome,
    ProcessTimeoutError,
    ScanCanceledError,
)
from jas.jasscanner.logger import get_logger

logger = get_logger("process")

SUCCESS_EXIT_CODE = 0
USER_NOT_ENTITLED = 31


def classify_exit(exit_code: int, stdout: str = "", stderr: str = "") -> ProcessOutcome:
    if exit_code == SUCCESS_EXIT_CODE:
        return ProcessOutcome(exit_code, OutcomeStatus.SUCCESS, stdout, stderr)
    if exit_code == USER_NOT_ENTITLED:
        return ProcessOutcome(exit_code, OutcomeStatus.NOT_ENTITLED, stdout, stderr)
    raise ProcessExecutionError(
        (stderr or "").strip() or f"Scanner exited with code {exit_code}",
        exit_code=exit_code,
        stderr=stderr or "",
    )


class ProcessRunner:
    def __init__(self, poll_interval: float = 0.2, kill_grace: float = 5.0) -> None:
        self.poll_interval = poll_interval
        self.kill_grace = kill_grace

    def run(
        self,
        binary: Path,
        args: Sequence[str],
        work_dir: Path,
        env: Mapping[str, str],
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> ProcessOutcome:
        cmd = [str(binary), *args]
        logger.debug("Executing %s in %s", " ".join(cmd), work_dir)
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(work_dir),
                env=dict(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise ProcessExecutionError(f"Failed to start {binary}: {exc}") from exc

        deadline = time.monotonic() + timeout if timeout else None
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_canceled:
                    self._terminate(proc)
                    raise ScanCanceledError(
                        f"Scan canceled while {Path(binary).name} was running",
                        error_code="CANCELED",
                    )
                if deadline is not None and time.monotonic() >= deadline:
                    self._terminate(proc)
                    raise ProcessTimeoutError(
                        f"{Path(binary).name} did not finish within {timeout} seconds",
                        exit_code=proc.returncode,
                    )

        logger.debug("%s exited with code %d", Path(binary).name, proc.returncode)
        return classify_exit(proc.returncode, stdout, stderr)

    def _terminate(self, proc: subprocess.Popen) -> None:
        proc.terminate()
        try:
            proc.communicate(timeout=self.kill_grace)
        except subprocess.TimeoutExpired:
            logger.warning("Process %d ignored SIGTERM; killing.", proc.pid)
            proc.kill()
            proc.communicate()
