import asyncio
import logging

import click
from pydantic import ValidationError

from sitewatch.models import MonitorConfig
from sitewatch.monitor_manager import Watchdog
from sitewatch.validation import check_executable

logger = logging.getLogger("SiteWatch.CLI")


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "config"
        problems.append(f"{field}: {error['msg']}")
    return "; ".join(problems)


def build_config(**options) -> MonitorConfig:
    """Turn raw CLI/env options into a validated MonitorConfig or raise a click usage error"""
    if not options.get("url"):
        raise click.UsageError("URL is required. Use --url or SITEWATCH_URL.")
    if not options.get("elf_path"):
        raise click.UsageError("ELF binary path is required. Use --elf or SITEWATCH_ELF.")

    problem = check_executable(options["elf_path"])
    if problem:
        raise click.BadParameter(problem, param_hint="--elf")

    try:
        return MonitorConfig(**options)
    except ValidationError as e:
        raise click.UsageError(f"Invalid configuration: {_format_validation_error(e)}")


def run_watchdog(config: MonitorConfig, serve: bool, host: str, port: int):
    watchdog = Watchdog(config)

    if serve:
        import uvicorn
        from sitewatch.main import create_app

        logger.info(f"Serving status API on http://{host}:{port}")
        uvicorn.run(create_app(watchdog), host=host, port=port)
        return

    try:
        asyncio.run(watchdog.run_loop())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


@click.command(help="Watch a website and run a binary when it goes down.")
@click.option("--url", envvar="SITEWATCH_URL", help="URL to monitor (required)")
@click.option("--elf", "elf_path", envvar="SITEWATCH_ELF",
              help="Path to the binary executed when the website is down (required)")
@click.option("--interval", envvar="SITEWATCH_INTERVAL", type=float, default=60, show_default=True,
              help="Check interval in seconds")
@click.option("--timeout", envvar="SITEWATCH_TIMEOUT", type=float, default=10, show_default=True,
              help="HTTP request timeout in seconds")
@click.option("--retries", envvar="SITEWATCH_RETRIES", type=int, default=3, show_default=True,
              help="Number of attempts before considering the site down")
@click.option("--retry-delay", envvar="SITEWATCH_RETRY_DELAY", type=float, default=2.0, show_default=True,
              help="Pause between attempts of the same check, in seconds")
@click.option("--verbose", envvar="SITEWATCH_VERBOSE", is_flag=True, default=False,
              help="Enable verbose logging")
@click.option("--backoff-initial", envvar="SITEWATCH_BACKOFF_INITIAL", type=float, default=60, show_default=True,
              help="Initial backoff delay in seconds")
@click.option("--backoff-factor", envvar="SITEWATCH_BACKOFF_FACTOR", type=float, default=2.0, show_default=True,
              help="Multiplier applied to the delay on each further failure")
@click.option("--backoff-max", envvar="SITEWATCH_BACKOFF_MAX", type=float, default=3600, show_default=True,
              help="Maximum backoff delay in seconds")
@click.option("--serve/--no-serve", envvar="SITEWATCH_SERVE", default=False,
              help="Expose the status API while monitoring")
@click.option("--host", envvar="SITEWATCH_HOST", default="127.0.0.1", show_default=True)
@click.option("--port", envvar="SITEWATCH_PORT", type=int, default=8000, show_default=True)
def main(serve: bool, host: str, port: int, **options) -> None:
    logging.basicConfig(level=logging.INFO)

    config = build_config(**options)
    run_watchdog(config, serve=serve, host=host, port=port)


if __name__ == "__main__":
    main()
