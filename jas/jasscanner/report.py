# Json 변환 + 저장

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from jas.jasscanner.interfaces import ScanReport


def _serialize(obj: Any) -> Any:
    """datetime / Path / Enum 직렬화 함수"""
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


def _normalize_keys(value: Any) -> Any:
    # severity_counts 처럼 Enum 키를 가진 dict 는 json.dumps 가 처리하지 못함
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else k): _normalize_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_normalize_keys(v) for v in value]
    return value


def scan_report_to_dict(report: ScanReport) -> Dict[str, Any]:
    """ScanReport를 딕셔너리로 변환 (datetime은 ISO 형식으로)"""
    return json.loads(json.dumps(_normalize_keys(asdict(report)), default=_serialize))


class JSONFormatter:
    def __init__(self, pretty_print: bool = True):
        self.pretty_print = pretty_print

    def format(self, report: ScanReport) -> str:
        return json.dumps(
            scan_report_to_dict(report),
            ensure_ascii=False,
            indent=2 if self.pretty_print else None,
        )

    def save(self, report: ScanReport, path: Path) -> None:
        path = Path(path)
        if not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.format(report), encoding="utf-8")
