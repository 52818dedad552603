"""FastAPI application for the webhook receiver.

create_app() wires the receiver from HookSettings:

- POST {webhook_path}: deliveries, handed to the RequestDispatcher
- GET /health: liveness check
- GET /metrics: Prometheus metrics

The script is loaded before the app is built, so an app only exists for a
script that parsed.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CollectorRegistry

from . import __version__
from .config import HookSettings, log_configuration
from .dispatcher import RequestDispatcher
from .dumper import PayloadDumper
from .events.metrics import HookMetrics, generate_metrics_output, get_metrics
from .events.sink import LogSink, StructlogSink
from .script.engine import ScriptEngine
from .script.functions import ControlFunctionSet
from .webhook.classifier import create_event_classifier
from .webhook.signature import SignatureVerifier

logger = structlog.get_logger(__name__)


def build_dispatcher(
    settings: HookSettings,
    metrics: HookMetrics,
    sink: Optional[LogSink] = None,
) -> RequestDispatcher:
    """Wire the dispatcher and load the script.

    Args:
        settings: Validated receiver settings.
        metrics: Metrics recorder shared by the dispatcher and ``exec``.
        sink: Destination for script log lines. Defaults to structlog.

    Returns:
        A dispatcher with a loaded script engine.

    Raises:
        ScriptLoadError: If the script cannot be read or parsed.
    """
    functions = ControlFunctionSet(
        sink=sink or StructlogSink(),
        debug=settings.debug,
        metrics=metrics,
    )
    engine = ScriptEngine(functions)
    engine.load(settings.script)

    return RequestDispatcher(
        verifier=SignatureVerifier(settings.secret_bytes()),
        classifier=create_event_classifier(),
        engine=engine,
        metrics=metrics,
        dumper=PayloadDumper(settings.dump_dir) if settings.debug else None,
    )


def create_app(
    settings: HookSettings,
    dispatcher: Optional[RequestDispatcher] = None,
    registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Validated receiver settings.
        dispatcher: Prebuilt dispatcher. Built from ``settings`` if omitted.
        registry: Prometheus registry. The default registry if omitted.

    Returns:
        The application.

    Raises:
        ScriptLoadError: If the dispatcher is built here and the script
                         does not load.
    """
    if dispatcher is None:
        dispatcher = build_dispatcher(settings, get_metrics(registry))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("hookscript starting up", version=__version__)
        log_configuration(settings)

        yield

        logger.info("hookscript shutting down", pending=dispatcher.pending)
        await dispatcher.join()
        logger.info("hookscript shutdown complete")

    app = FastAPI(
        title="hookscript",
        description="Signed GitHub webhook receiver driving template scripts",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher

    @app.get("/health")
    async def health():
        """Liveness check endpoint."""
        return {"status": "healthy"}

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics():
        """Prometheus metrics endpoint."""
        return PlainTextResponse(generate_metrics_output(registry))

    @app.post(settings.webhook_path)
    async def webhook(request: Request):
        """GitHub webhook receiver endpoint.

        The body is read once and the same bytes are verified, decoded and
        dumped. The response is sent once the script has been scheduled.
        """
        body = await request.body()
        result = await dispatcher.dispatch(request.headers, body)
        return JSONResponse(status_code=result.status_code, content=result.to_dict())

    return app
