import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from hooklistener.core.config import ListenerConfig
from hooklistener.core.exceptions import (
    PayloadError,
    SecurityError,
    TransportError,
    UnhandledEventError,
)
from hooklistener.schemas.task import TaskContext, TaskResult
from hooklistener.schemas.webhook import CanonicalEvent, InboundRequest
from hooklistener.services.provider_detector import ProviderDetector
from hooklistener.services.task_runner import TaskRunner
from hooklistener.services.task_templates import resolve_commands
from hooklistener.services.webhook_factory import WebhookHandlerFactory

EventCallback = Callable[[CanonicalEvent], Any]


@dataclass(frozen=True)
class Delivery:
    """An authenticated, normalized webhook ready to be dispatched"""

    event: CanonicalEvent
    context: TaskContext


class WebhookListener:
    """Turns inbound webhook requests into canonical events and runs tasks for them.

    When a callback is given, every accepted event is handed to it and no
    task is run. Otherwise the configured task templates are expanded and
    executed.
    """

    def __init__(
        self,
        config: ListenerConfig,
        callback: Optional[EventCallback] = None,
        detector: Optional[ProviderDetector] = None,
        runner: Optional[TaskRunner] = None,
    ):
        self.config = config
        self.callback = callback
        self.detector = detector or ProviderDetector()
        self.runner = runner or TaskRunner(
            cmdshell=config.cmdshell,
            keep=config.keep,
            timeout=config.task_timeout,
            failure_policy=config.failure_policy,
        )
        self.logger = logging.getLogger(__name__)

    @property
    def active(self) -> bool:
        return self.callback is not None or bool(self.config.tasks)

    def accept(self, request: InboundRequest) -> Delivery:
        """Detect, verify, parse and normalize one request.

        Raises the WebhookError subclass matching the first step that fails.
        """
        if request.method.upper() != "POST":
            self.logger.error(
                f"got invalid method from {request.remote_address}, returning 405"
            )
            raise TransportError(f"Method {request.method} not allowed", status_code=405)

        provider = self.detector.detect(request)
        self.logger.info(f"start processing [provider: {provider.value}]")
        handler = WebhookHandlerFactory.get_handler(provider, request.headers)

        result = handler.verify(self.config.provider_config(provider), request.body)
        if not result.success:
            self.logger.error(
                f"security check failed for {provider.value} from "
                f"{request.remote_address}: {result.reason}"
            )
            raise SecurityError(result.reason)

        self.logger.info(
            f"received {len(request.body)} bytes from {request.remote_address}"
        )
        handler.set_data(self.parse_body(request))

        try:
            event = handler.get_event_data()
            context = handler.get_task_context(request.remote_address)
        except UnhandledEventError as e:
            self.logger.error(f"{provider.value}: {e.message}")
            raise
        except (AttributeError, TypeError, ValidationError) as e:
            self.logger.exception(f"{provider.value}: malformed {handler.event} payload")
            raise PayloadError(handler.event, str(e)) from e

        return Delivery(event=event, context=context)

    def parse_body(self, request: InboundRequest) -> dict:
        if not request.body:
            raise TransportError("Empty request body")
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError) as e:
            self.logger.error(
                f"received invalid data from {request.remote_address}, returning 400"
            )
            raise TransportError(f"Invalid JSON body: {e}") from e
        if not isinstance(data, dict):
            raise TransportError("JSON body must be an object")
        return data

    def dispatch(self, delivery: Delivery) -> None:
        """Hand the event to the callback, or run the configured tasks"""
        try:
            if self.callback is not None:
                self.logger.info("execute callback")
                self.callback(delivery.event)
            else:
                self.run_tasks(delivery)
        except Exception:
            self.logger.exception(
                f"Failed to dispatch {delivery.event.event_name.value} event"
            )

    def run_tasks(self, delivery: Delivery) -> List[TaskResult]:
        repository = delivery.context.repository
        commands = resolve_commands(
            self.config.tasks, delivery.context.placeholders(), repository
        )
        if not commands:
            self.logger.info(f'No related commands for repository "{repository}"')
            return []
        return self.runner.run(commands)
