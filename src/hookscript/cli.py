"""Command line entry point.

    hookscript [--cert FILE --key FILE] [--addr HOST:PORT] [--log FILE]
               [--debug] --secret KEY SCRIPT

Starts a web server that accepts GitHub webhook deliveries. Each delivery is
verified against its signature, decoded into an event and passed to the
template SCRIPT, which reacts through the env, exec, log and logf control
functions.

Every option can also be set through a HOOKSCRIPT_* environment variable;
flags win over the environment.
"""

import ssl
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
import uvicorn

from . import __version__
from .config import ConfigurationError, HookSettings, get_settings
from .logconfig import configure_logging
from .main import create_app
from .script.errors import ScriptLoadError


def _run_server(settings: HookSettings, app) -> None:
    """Serve the app over HTTP, or HTTPS when a certificate is configured."""
    host, port = settings.listen_address
    options = {}
    if settings.tls_enabled:
        # PROTOCOL_TLS_SERVER refuses anything older than TLS 1.2
        options = {
            "ssl_certfile": str(settings.cert),
            "ssl_keyfile": str(settings.key),
            "ssl_version": ssl.PROTOCOL_TLS_SERVER,
        }

    structlog.get_logger(__name__).info(
        "listening",
        address=f"{host}:{port}",
        scheme="https" if settings.tls_enabled else "http",
    )
    uvicorn.run(app, host=host, port=port, log_config=None, **options)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--secret", help="GitHub secret used to sign deliveries. Required.")
@click.option(
    "--cert",
    type=click.Path(dir_okay=False, path_type=Path),
    help="TLS certificate file. Requires --key.",
)
@click.option(
    "--key",
    type=click.Path(dir_okay=False, path_type=Path),
    help="TLS private key file. Requires --cert.",
)
@click.option(
    "--addr",
    help="Address to listen on. Defaults to 0.0.0.0:8080, or 0.0.0.0:8443 with TLS.",
)
@click.option(
    "--log",
    "log_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append log output to this file.",
)
@click.option(
    "--debug/--no-debug",
    default=None,
    help="Dump every delivery into the dump directory and trace exec calls.",
)
@click.argument("script", type=click.Path(dir_okay=False, path_type=Path))
@click.version_option(__version__)
def main(
    script: Path,
    secret: Optional[str] = None,
    cert: Optional[Path] = None,
    key: Optional[Path] = None,
    addr: Optional[str] = None,
    log_file: Optional[Path] = None,
    debug: Optional[bool] = None,
) -> None:
    """Run template SCRIPT for every verified GitHub webhook delivery."""
    try:
        settings = get_settings(
            secret=secret,
            script=script,
            cert=cert,
            key=key,
            addr=addr,
            log_file=log_file,
            debug=debug,
        )
    except ConfigurationError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)

    try:
        configure_logging(settings.log_level, settings.log_file, settings.log_json)
    except OSError as exc:
        click.echo(f"cannot open log file {settings.log_file}: {exc}", err=True)
        sys.exit(1)

    logger = structlog.get_logger(__name__)

    try:
        app = create_app(settings)
    except ScriptLoadError as exc:
        logger.error("script_load_failed", error=str(exc))
        click.echo(str(exc), err=True)
        sys.exit(1)

    try:
        _run_server(settings, app)
    except KeyboardInterrupt:
        logger.info("shutdown requested")


if __name__ == "__main__":
    main()
