"""
Binary Provisioner
------------------
variant 별 스캐너 바이너리가 고정 경로에 존재하고 최신인지 보장합니다.

- 파일이 없으면 무조건 다운로드
- 있으면 update interval 마다 한 번만 원격 체크섬(HEAD)과 로컬 SHA-256 을 비교해서 다를 때만 재다운로드
- 같은 경로에 대한 확인/다운로드는 경로 단위 lock 으로 직렬화
"""

from __future__ import annotations

import hashlib
import os
import stat
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Optional

from requests import RequestException

from jas.jasscanner.clients.http_client import create_release_client
from jas.jasscanner.clients.protocols import HttpClientProtocol
from jas.jasscanner.interfaces import BinaryState, DownloadError, ServerConfig
from jas.jasscanner.logger import get_logger

logger = get_logger("provisioner")

CHECKSUM_HEADER = "X-Checksum-Sha256"
CHUNK_SIZE = 1024 * 1024

_path_locks: Dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def lock_for(path: Path) -> threading.Lock:
    """Return the process-wide lock guarding a binary path."""
    key = str(Path(path).resolve())
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _path_locks[key] = lock
        return lock


def sha256_of(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def make_executable(path: Path) -> None:
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


class BinaryProvisioner:
    """Keeps one scanner binary present and fresh on disk."""

    def __init__(
        self,
        target_path: Path,
        download_url: str,
        *,
        http_client: Optional[HttpClientProtocol] = None,
        server: Optional[ServerConfig] = None,
        timeout: Optional[float] = None,
        update_interval: timedelta = timedelta(days=1),
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.state = BinaryState(target_path=Path(target_path))
        self.download_url = download_url
        self.http_client = http_client
        self.server = server
        self.timeout = timeout
        self.update_interval = update_interval
        self.clock = clock
        self._lock = lock_for(self.state.target_path)

    @property
    def target_path(self) -> Path:
        return self.state.target_path

    def ensure(self) -> Path:
        with self._lock:
            target = self.state.target_path
            if not target.exists():
                logger.info("Scanner binary %s not found; downloading.", target.name)
                self._download()
                self.state.next_update_check = self.clock() + self.update_interval
                return target

            now = self.clock()
            if self.state.next_update_check is not None and now <= self.state.next_update_check:
                return target

            # HEAD 가 실패해도 interval 당 한 번만 확인
            self.state.next_update_check = now + self.update_interval
            remote = self._remote_checksum()
            local = sha256_of(target)
            if remote.lower() != local.lower():
                logger.info("New version of %s available; updating.", target.name)
                self._download()
            else:
                self.state.checksum = local
                logger.debug("Scanner binary %s is up to date.", target.name)
            return target

    def _client(self) -> HttpClientProtocol:
        if self.http_client is None:
            self.http_client = create_release_client(
                self.server, release_url=self.download_url, timeout=self.timeout
            )
        return self.http_client

    def _remote_checksum(self) -> str:
        try:
            res = self._client().head(self.download_url)
        except RequestException as exc:
            raise DownloadError(
                f"Checksum request for {self.download_url} failed: {exc}",
                error_code="CHECKSUM_REQUEST_FAILED",
            ) from exc

        if res.status_code != 200:
            raise DownloadError(
                f"Checksum request for {self.download_url} returned HTTP {res.status_code}",
                error_code="CHECKSUM_HTTP_ERROR",
                context={"status_code": res.status_code},
            )
        checksum = res.headers.get(CHECKSUM_HEADER)
        if not checksum:
            raise DownloadError(
                f"Response for {self.download_url} has no {CHECKSUM_HEADER} header",
                error_code="CHECKSUM_MISSING",
            )
        return checksum.strip()

    def _download(self) -> None:
        target = self.state.target_path
        target.parent.mkdir(parents=True, exist_ok=True)

        try:
            res = self._client().get(self.download_url, stream=True)
        except RequestException as exc:
            raise DownloadError(
                f"Download of {self.download_url} failed: {exc}",
                error_code="DOWNLOAD_FAILED",
            ) from exc

        try:
            if res.status_code != 200:
                raise DownloadError(
                    f"Download of {self.download_url} returned HTTP {res.status_code}",
                    error_code="DOWNLOAD_HTTP_ERROR",
                    context={"status_code": res.status_code},
                )

            # 같은 디렉토리의 임시 파일에 먼저 받고 교체 (반쯤 받은 파일이 남지 않도록)
            fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.")
            digest = hashlib.sha256()
            size = 0
            try:
                with os.fdopen(fd, "wb") as fh:
                    for chunk in res.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        fh.write(chunk)
                        digest.update(chunk)
                        size += len(chunk)
                if size == 0:
                    raise DownloadError(
                        "An empty response received from the release server.",
                        error_code="EMPTY_DOWNLOAD",
                    )
                os.replace(tmp_name, target)
            except RequestException as exc:
                raise DownloadError(
                    f"Download of {self.download_url} was interrupted: {exc}",
                    error_code="DOWNLOAD_INTERRUPTED",
                ) from exc
            finally:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
        finally:
            res.close()

        make_executable(target)
        self.state.checksum = digest.hexdigest()
        logger.info("Downloaded %s (%d bytes).", target.name, size)
