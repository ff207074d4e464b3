from __future__ import annotations

import click

from jas.jasscanner.config import (
    build_server_config,
    build_settings,
    load_config_file,
    server_config_from_env,
)
from jas.jasscanner.interfaces import (
    ExecutionStatus,
    JasException,
    PackageType,
    ScanRequest,
    ServerConfig,
)
from jas.jasscanner.logger import init_logger
from jas.jasscanner.report import JSONFormatter
from jas.jasscanner.scan_engine import Scanner
from jas.jasscanner.variants import VARIANTS, get_variant


# CLI Root
@click.group()
def cli():
    """JFrog advanced security scanner-binary runner."""


# scan 명령어
@cli.command("scan")
@click.option("-r", "--root", "roots", multiple=True, required=True,
              type=click.Path(exists=True, file_okay=False, resolve_path=True),
              help="Project root to scan (can be used multiple times)")
@click.option("-s", "--variant", "variants", multiple=True,
              type=click.Choice(sorted(VARIANTS), case_sensitive=False),
              help="Scan variant to run (default: all)")
@click.option("--cve", "cves", multiple=True, help="CVE id to check for applicability")
@click.option("--skip-folder", "skipped_folders", multiple=True, help="Folder pattern to skip")
@click.option("--package-type",
              type=click.Choice([pt.value for pt in PackageType], case_sensitive=False),
              default=PackageType.GENERIC.value, show_default=True,
              help="Package manager of the scanned project")
@click.option("-u", "--url", help="JFrog platform URL (default: $JFROG_URL)")
@click.option("--user", "username", help="Platform username")
@click.option("--password", help="Platform password")
@click.option("--access-token", help="Platform access token (overrides user/password)")
@click.option("-c", "--config", "config_path", help="JSON/YAML config file")
@click.option("-o", "--output", help="Write the JSON report to this file instead of stdout")
@click.option("--timeout", type=float, help="Scanner process timeout in seconds")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option("--log-file", help="Log file path")
def scan(
    roots,
    variants,
    cves,
    skipped_folders,
    package_type,
    url,
    username,
    password,
    access_token,
    config_path,
    output,
    timeout,
    verbose,
    log_file,
):
    logger = init_logger(verbose, log_file)

    try:
        file_config = load_config_file(config_path)
        settings_data = dict(file_config.get("settings") or {})
        if timeout is not None:
            settings_data["process_timeout"] = timeout
        settings = build_settings(settings_data)
        server = build_server_config(file_config.get("server")) or server_config_from_env()
    except JasException as exc:
        raise click.ClickException(exc.message)

    if url or access_token or username:
        base = server or ServerConfig()
        server = ServerConfig(
            url=url or base.url,
            xray_url=base.xray_url,
            username=username or base.username,
            password=password or base.password,
            access_token=access_token or base.access_token,
            proxy=base.proxy,
        )

    request = ScanRequest(
        roots=roots,
        cves=cves,
        skipped_folders=skipped_folders,
        package_type=PackageType(package_type.upper()),
    )
    chosen = [get_variant(name) for name in variants] or None

    scanner = Scanner(settings, server, variants=chosen, logger=logger)
    report = scanner.scan(request)

    formatter = JSONFormatter(pretty_print=True)
    if output:
        formatter.save(report, output)
        logger.info("Scan report written to %s", output)
    else:
        click.echo(formatter.format(report))

    if any(r.status == ExecutionStatus.FAILED for r in report.variant_results):
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
