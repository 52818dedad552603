"""Request dispatch: verify, classify, evaluate.

For every delivery the dispatcher:

1. Verifies the HMAC signature over the buffered body. Failure is a 401 and
   nothing else happens: no decoding, no script.
2. Classifies the event label and decodes the body. A missing label or an
   undecodable body is a 400.
3. Starts script evaluation on a thread of its own and answers 202 right
   away. Each evaluation gets a dedicated thread, so an ``exec`` that hangs
   only holds up the event that ran it.
   The response reflects acceptance only; script errors are logged and
   counted, never reported to the sender.

When a dumper is configured, every body is also handed to it in the
background, whatever the outcome.

Response messages are fixed strings so they never reveal why verification
or decoding failed.
"""

import asyncio
import contextvars
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Set

import structlog

from .dumper import PayloadDumper
from .events.metrics import HookMetrics
from .script.engine import ScriptEngine
from .script.errors import ScriptError
from .webhook.classifier import EventClassifier
from .webhook.errors import DecodeError
from .webhook.models import Event
from .webhook.signature import SignatureVerifier

logger = structlog.get_logger(__name__)

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"


async def run_in_thread(func: Callable[..., Any], *args: Any, name: Optional[str] = None) -> Any:
    """Run ``func(*args)`` on a new thread and await its result.

    Each call gets a thread of its own instead of a slot in the loop's
    bounded default executor, so any number of calls can block at once.

    Raises:
        Whatever ``func`` raises.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    context = contextvars.copy_context()

    def settle(outcome: Callable[[], None]) -> None:
        if not future.done():
            outcome()

    def runner() -> None:
        try:
            result = context.run(func, *args)
        except BaseException as exc:
            loop.call_soon_threadsafe(settle, lambda error=exc: future.set_exception(error))
        else:
            loop.call_soon_threadsafe(settle, lambda: future.set_result(result))

    threading.Thread(target=runner, name=name, daemon=True).start()
    return await future


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of dispatching one delivery.

    Attributes:
        status_code: HTTP status for the response.
        status: "accepted" or "rejected".
        message: Short, fixed response message.
    """

    status_code: int
    status: str
    message: str

    def to_dict(self) -> dict:
        return {"status": self.status, "message": self.message}


ACCEPTED = DispatchResult(202, "accepted", "event accepted")
UNAUTHORIZED = DispatchResult(401, "rejected", "invalid signature")
MISSING_EVENT = DispatchResult(400, "rejected", "missing event header")
MALFORMED = DispatchResult(400, "rejected", "malformed payload")


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        wanted = name.lower()
        for key, candidate in headers.items():
            if key.lower() == wanted:
                return candidate
    return value


class RequestDispatcher:
    """Routes authenticated deliveries into the script engine.

    Attributes:
        verifier: Signature verifier holding the shared secret.
        classifier: Event label to payload decoder.
        engine: Loaded script engine.
        metrics: Metrics recorder.
        dumper: Optional debug payload dumper.
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        classifier: EventClassifier,
        engine: ScriptEngine,
        metrics: HookMetrics,
        dumper: Optional[PayloadDumper] = None,
    ):
        self.verifier = verifier
        self.classifier = classifier
        self.engine = engine
        self.metrics = metrics
        self.dumper = dumper
        self._pending: Set[asyncio.Task] = set()

    async def dispatch(
        self,
        headers: Mapping[str, str],
        body: bytes,
    ) -> DispatchResult:
        """Dispatch one delivery.

        Args:
            headers: Request headers.
            body: The fully buffered request body.

        Returns:
            The result to send back. Evaluation may still be running.
        """
        event_name = _header(headers, EVENT_HEADER)
        delivery = _header(headers, DELIVERY_HEADER)
        log = logger.bind(github_event=event_name, delivery=delivery)

        if self.dumper is not None:
            self._track(asyncio.to_thread(self.dumper.dump, event_name, body))

        if not self.verifier.verify_headers(headers, body):
            log.warning("delivery_unauthorized")
            self.metrics.record_request("unauthorized")
            return UNAUTHORIZED

        if not event_name:
            log.warning("delivery_malformed", error="missing event header")
            self.metrics.record_request("malformed")
            return MISSING_EVENT

        try:
            event = self.classifier.classify(
                event_name, body, _header(headers, "Content-Type")
            )
        except DecodeError as exc:
            log.warning("delivery_malformed", error=str(exc))
            self.metrics.record_request("malformed")
            return MALFORMED

        self.metrics.record_request("accepted")
        self.metrics.record_event(event_name)
        log.info("delivery_accepted", typed=event.is_typed)

        self._track(self._evaluate(event, delivery))
        return ACCEPTED

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _evaluate(self, event: Event, delivery: Optional[str] = None) -> bool:
        """Run the script for one event on its own thread.

        Returns:
            True if evaluation completed without error.
        """
        log = logger.bind(github_event=event.name, delivery=delivery)
        start = time.monotonic()
        success = False
        try:
            await run_in_thread(self.engine.evaluate, event, name="hookscript-eval")
            success = True
            log.debug("script_evaluated")
        except ScriptError as exc:
            log.error("script_evaluation_failed", error=str(exc))
        except Exception:
            log.exception("script_evaluation_crashed")
        finally:
            self.metrics.record_evaluation(success, time.monotonic() - start)
        return success

    @property
    def pending(self) -> int:
        """Number of evaluations and dumps still running."""
        return len(self._pending)

    async def join(self) -> None:
        """Wait for every in-flight evaluation and dump to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
