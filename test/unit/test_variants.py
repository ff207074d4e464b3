import json
import os

import pytest

from jas.jasscanner import distribution
from jas.jasscanner.cancellation import CancellationToken
from jas.jasscanner.interfaces import (
    DownloadError,
    ExecutionStatus,
    OutputParseError,
    PackageType,
    ProcessExecutionError,
    ScanRequest,
    UnsupportedPackageTypeError,
    UnsupportedPlatformError,
)
from jas.jasscanner.variants import (
    APPLICABILITY,
    IAC,
    SECRETS,
    VARIANTS,
    ScanExecutor,
    get_variant,
)


@pytest.fixture
def request_():
    return ScanRequest(roots=["/src/app"], cves=["CVE-2021-3918"], package_type=PackageType.NPM)


@pytest.mark.unit
def test_variant_table():
    assert list(VARIANTS) == ["iac", "secrets", "applicability"]
    assert (IAC.scan_type, IAC.args, IAC.feature) == ("iac-scan-modules", ("iac",), "iac_scanners")
    assert (SECRETS.scan_type, SECRETS.args, SECRETS.feature) == ("secrets-scan", ("sec",), "secrets_detection")
    assert APPLICABILITY.scan_type == "analyze-applicability"
    assert APPLICABILITY.feature == "contextual_analysis"
    assert get_variant("SECRETS") is SECRETS
    with pytest.raises(KeyError):
        get_variant("sast")


@pytest.mark.unit
def test_package_type_support():
    assert all(IAC.supports(pt) for pt in PackageType)
    assert APPLICABILITY.supports(PackageType.PYPI)
    assert not APPLICABILITY.supports(PackageType.MAVEN)
    assert not APPLICABILITY.supports(PackageType.GENERIC)


@pytest.mark.unit
@pytest.mark.parametrize(
    "dist,binary",
    [("linux-amd64", "secrets_scanner"), ("windows-amd64", "secrets_scanner.exe")],
)
def test_default_provisioner_location(settings, dist, binary):
    executor = ScanExecutor(SECRETS, settings, distribution=dist)

    assert executor.provisioner.target_path == settings.binaries_dir / binary
    assert executor.provisioner.download_url == (
        f"https://releases.example.com/artifactory/ide-scanners/secrets/v1/[RELEASE]/{dist}/{binary}"
    )


@pytest.mark.unit
def test_unsupported_platform_skips(settings, token_server, monkeypatch, request_):
    def unsupported():
        raise UnsupportedPlatformError("plan9", "mips")

    monkeypatch.setattr(distribution, "current_distribution", unsupported)
    executor = ScanExecutor(IAC, settings, token_server)

    assert executor.provisioner is None
    result = executor.execute(request_)
    assert result.status == ExecutionStatus.SKIPPED
    assert "plan9-mips" in result.reason


@pytest.mark.unit
def test_successful_run(executor_factory, request_, sample_sarif, tmp_path, jas_temp_dirs):
    record = tmp_path / "record.json"
    executor = executor_factory(SECRETS, sarif=sample_sarif, record=record)

    result = executor.execute(request_)

    assert result.status == ExecutionStatus.SUCCESS
    assert [w.rule_id for w in result.warnings] == ["aws-access-key", "private-key", "aws_s3_public"]

    recorded = json.loads(record.read_text())
    assert recorded["argv"][0] == "sec"
    scans = recorded["descriptor"]["scans"]
    assert len(scans) == 1
    assert scans[0]["type"] == "secrets-scan"
    assert scans[0]["roots"] == ["/src/app"]
    assert scans[0]["cve-whitelist"] == ["CVE-2021-3918"]
    assert os.path.realpath(os.path.dirname(scans[0]["output"])) == os.path.realpath(recorded["cwd"])
    assert recorded["env"]["JF_TOKEN"] == "tok-123"
    assert recorded["env"]["JF_PLATFORM_URL"] == "https://acme.jfrog.io"
    assert executor.gate.features == ["secrets_detection"]
    # 임시 디렉토리는 모두 정리
    assert list(jas_temp_dirs.iterdir()) == []


@pytest.mark.unit
def test_not_entitled_exit_code_gives_empty_result(executor_factory, request_, jas_temp_dirs):
    result = executor_factory(IAC, mode="not-entitled").execute(request_)

    assert result.status == ExecutionStatus.SKIPPED
    assert result.warnings == []
    assert list(jas_temp_dirs.iterdir()) == []


@pytest.mark.unit
def test_gate_refusal_skips_without_provisioning(executor_factory, request_):
    executor = executor_factory(SECRETS, entitled=False)

    result = executor.execute(request_)

    assert result.status == ExecutionStatus.SKIPPED
    assert executor.provisioner.calls == 0


@pytest.mark.unit
def test_failure_propagates_and_cleans_up(executor_factory, request_, jas_temp_dirs):
    with pytest.raises(ProcessExecutionError) as exc_info:
        executor_factory(SECRETS, mode="fail").execute(request_)

    assert "scanner crashed" in exc_info.value.stderr
    assert list(jas_temp_dirs.iterdir()) == []


@pytest.mark.unit
def test_garbage_output_raises_parse_error(executor_factory, request_, jas_temp_dirs):
    with pytest.raises(OutputParseError):
        executor_factory(SECRETS, mode="garbage").execute(request_)

    assert list(jas_temp_dirs.iterdir()) == []


@pytest.mark.unit
def test_provisioning_failure_propagates(executor_factory, request_):
    executor = executor_factory(SECRETS, provision_error=DownloadError("offline"))

    with pytest.raises(DownloadError):
        executor.execute(request_)


@pytest.mark.unit
def test_canceled_before_start(executor_factory, request_):
    token = CancellationToken()
    token.cancel()
    executor = executor_factory(SECRETS)

    result = executor.execute(request_, token)

    assert result.status == ExecutionStatus.CANCELED
    assert executor.gate.features == []
    assert executor.provisioner.calls == 0


@pytest.mark.unit
def test_cancel_while_running(executor_factory, request_, jas_temp_dirs):
    calls = {"n": 0}

    def cancel_after_a_while():
        calls["n"] += 1
        return calls["n"] > 5

    token = CancellationToken.from_callback(cancel_after_a_while)
    executor = executor_factory(SECRETS, mode="sleep")
    executor.runner.poll_interval = 0.05

    result = executor.execute(request_, token)

    assert result.status == ExecutionStatus.CANCELED
    assert list(jas_temp_dirs.iterdir()) == []


@pytest.mark.unit
def test_unsupported_package_type_raises(executor_factory):
    executor = executor_factory(APPLICABILITY)

    with pytest.raises(UnsupportedPackageTypeError):
        executor.execute(ScanRequest(roots=["/src"], package_type=PackageType.MAVEN))
    assert executor.gate.features == []


@pytest.mark.unit
def test_release_downloads_follow_server_proxy(settings, proxy_server):
    executor = ScanExecutor(SECRETS, settings, proxy_server, distribution="linux-amd64")

    config = executor.provisioner._client().config

    assert config.proxies["https"] == "https://pu:pp@proxy.local:3128"
    assert config.timeout == settings.http_timeout


@pytest.mark.unit
def test_canceled_after_provisioning(executor_factory, request_, monkeypatch, jas_temp_dirs):
    token = CancellationToken()
    executor = executor_factory(SECRETS)
    ensure = executor.provisioner.ensure

    def ensure_then_cancel():
        path = ensure()
        token.cancel()
        return path

    def no_process(*args, **kwargs):
        raise AssertionError("scanner must not be started after cancellation")

    monkeypatch.setattr(executor.provisioner, "ensure", ensure_then_cancel)
    monkeypatch.setattr(executor.runner, "run", no_process)

    result = executor.execute(request_, token)

    assert result.status == ExecutionStatus.CANCELED
    assert executor.provisioner.calls == 1
    assert list(jas_temp_dirs.iterdir()) == []
