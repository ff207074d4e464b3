"""
SARIF 결과 파서
---------------
스캐너 바이너리가 남긴 SARIF 형태 JSON 을 SecurityWarning 리스트로 변환합니다.

    { "runs": [ { "tool": { "driver": { "name": ... } },
                  "results": [ { "ruleId", "message": {"text"}, "level", "kind",
                                 "locations": [ { "physicalLocation": {
                                     "artifactLocation": {"uri"},
                                     "region": {startLine, startColumn, endLine, endColumn,
                                                "snippet": {"text"}} } } ] } ] } ] }

physicalLocation 없이 location 에 region / artifactLocation 이 바로 오는 형태도 허용합니다.
알 수 없는 필드는 무시하고(스키마 확장 대비), 필수 필드가 없거나 형식이 틀리면 OutputParseError.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from jas.jasscanner.interfaces import OutputParseError, SecurityWarning, Severity

LEVEL_TO_SEVERITY: Dict[str, Severity] = {
    "error": Severity.HIGH,
    "warning": Severity.MEDIUM,
    "note": Severity.LOW,
    "none": Severity.UNKNOWN,
}

NOT_APPLICABLE_KIND = "pass"
REGION_FIELDS = ("startLine", "startColumn", "endLine", "endColumn")


def level_to_severity(level: Optional[str]) -> Severity:
    if not level:
        return Severity.MEDIUM
    return LEVEL_TO_SEVERITY.get(str(level).lower(), Severity.MEDIUM)


def uri_to_path(uri: str) -> str:
    if uri.startswith("file:"):
        parsed = urlparse(uri)
        path = unquote(parsed.path)
        # file:///C:/x 형태의 윈도우 경로
        if len(path) > 2 and path[0] == "/" and path[2] == ":":
            path = path[1:]
        return path
    return uri


def _require(mapping: Any, key: str, where: str) -> Any:
    if not isinstance(mapping, dict) or key not in mapping or mapping[key] is None:
        raise OutputParseError(f"Missing '{key}' in {where}", error_code="MISSING_FIELD")
    return mapping[key]


def _as_int(value: Any, name: str, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise OutputParseError(
            f"'{name}' in {where} must be an integer, got {value!r}",
            error_code="MALFORMED_FIELD",
        )
    return value


class ResultParser:
    def parse(self, output_path: Path) -> List[SecurityWarning]:
        try:
            with open(output_path, "r", encoding="utf-8") as fh:
                document = json.load(fh)
        except FileNotFoundError as exc:
            raise OutputParseError(
                f"Scanner output {output_path} was not created", error_code="MISSING_OUTPUT"
            ) from exc
        except (OSError, ValueError) as exc:
            raise OutputParseError(
                f"Scanner output {output_path} is not valid JSON: {exc}", error_code="BAD_JSON"
            ) from exc
        return self.parse_document(document)

    def parse_document(self, document: Any) -> List[SecurityWarning]:
        runs = _require(document, "runs", "output document")
        if not isinstance(runs, list):
            raise OutputParseError("'runs' must be a list", error_code="MALFORMED_FIELD")

        warnings: List[SecurityWarning] = []
        for run_idx, run in enumerate(runs):
            where = f"runs[{run_idx}]"
            driver = _require(_require(run, "tool", where), "driver", f"{where}.tool")
            reporter = _require(driver, "name", f"{where}.tool.driver")

            results = run.get("results") or []
            if not isinstance(results, list):
                raise OutputParseError(f"'{where}.results' must be a list", error_code="MALFORMED_FIELD")

            for res_idx, result in enumerate(results):
                warnings.append(self._to_warning(result, str(reporter), f"{where}.results[{res_idx}]"))
        return warnings

    def _to_warning(self, result: Any, reporter: str, where: str) -> SecurityWarning:
        rule_id = _require(result, "ruleId", where)
        kind = result.get("kind")
        message = result.get("message") or {}
        level = result.get("level")

        locations = result.get("locations") or []
        if not locations and kind == NOT_APPLICABLE_KIND:
            # not-applicable 결과는 위치 정보가 없을 수 있음
            file_path, region = "", {name: 0 for name in REGION_FIELDS}
        else:
            if not isinstance(locations, list) or not locations:
                raise OutputParseError(f"Missing 'locations' in {where}", error_code="MISSING_FIELD")
            location = locations[0]
            if not isinstance(location, dict):
                raise OutputParseError(f"Malformed location in {where}", error_code="MALFORMED_FIELD")
            # physicalLocation 없이 region 이 location 바로 아래 오는 형태도 허용
            physical = location.get("physicalLocation") or location
            region = _require(physical, "region", f"{where}.locations[0]")
            artifact = physical.get("artifactLocation") or {}
            file_path = uri_to_path(str(artifact.get("uri", ""))) if isinstance(artifact, dict) else ""

        bounds = {
            name: _as_int(_require(region, name, f"{where} region"), name, where)
            for name in REGION_FIELDS
        }
        snippet = region.get("snippet") or {}

        return SecurityWarning(
            file_path=file_path,
            line_start=bounds["startLine"],
            col_start=bounds["startColumn"],
            line_end=bounds["endLine"],
            col_end=bounds["endColumn"],
            severity=level_to_severity(level),
            rule_id=str(rule_id),
            line_snippet=str(snippet.get("text", "")) if isinstance(snippet, dict) else "",
            reporter=reporter,
            reason=str(message.get("text", "")) if isinstance(message, dict) else "",
            applicable=None if kind is None else kind != NOT_APPLICABLE_KIND,
            level=level,
        )
