import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from hooklistener.core.config import ProviderConfig
from hooklistener.core.exceptions import UnhandledEventActionError, UnhandledEventError
from hooklistener.schemas.task import TaskContext
from hooklistener.schemas.webhook import (
    CanonicalEvent,
    EventName,
    EventPayload,
    IssueState,
    SecurityCheckResult,
    WebhookProvider,
)


@dataclass(frozen=True)
class EventRoute:
    """Canonical event name plus the handler method that builds its payload"""

    event_name: EventName
    extractor: str


# Provider event type -> route, or -> {action -> route} for events with subtypes
EventRoutes = Dict[str, Union[EventRoute, Dict[str, EventRoute]]]


class WebhookHandler(ABC):
    """Per-provider strategy: security check plus payload normalization.

    A handler is built from the request headers, then fed the parsed body
    through ``set_data`` before ``get_event_data`` is called.
    """

    provider: WebhookProvider
    event_header: str
    routes: EventRoutes = {}
    state_map: Dict[str, IssueState] = {}

    def __init__(self, headers: Mapping[str, str]):
        self.headers = {key.lower(): value for key, value in headers.items()}
        self.event: Optional[str] = self.headers.get(self.event_header)
        self.data: Optional[Dict[str, Any]] = None
        self.action: Optional[str] = None

    @abstractmethod
    def verify(self, config: ProviderConfig, body: bytes = b"") -> SecurityCheckResult:
        """Check the request authenticity. Never raises."""
        pass

    @abstractmethod
    def get_task_context(self, remote_address: Optional[str] = None) -> TaskContext:
        """Collect the values task templates can refer to"""
        pass

    def read_action(self, data: Dict[str, Any]) -> Optional[str]:
        return None

    def set_data(self, data: Dict[str, Any]) -> None:
        self.data = data
        action = self.read_action(data)
        self.action = action if isinstance(action, str) else None

    def resolve_route(self) -> EventRoute:
        entry = self.routes.get(self.event) if self.event is not None else None
        if entry is None:
            raise UnhandledEventError(self.event)
        if isinstance(entry, EventRoute):
            return entry
        route = entry.get(self.action) if self.action is not None else None
        if route is None:
            raise UnhandledEventActionError(self.event, self.action)
        return route

    def get_event_data(self) -> CanonicalEvent:
        if self.data is None:
            raise RuntimeError("set_data must be called before get_event_data")
        route = self.resolve_route()
        payload: EventPayload = getattr(self, route.extractor)()
        return CanonicalEvent(
            provider=self.provider,
            event_name=route.event_name,
            data=payload,
            raw_payload=self.data,
        )

    def map_state(self, state: Optional[str]) -> Optional[IssueState]:
        return self.state_map.get(state) if state is not None else None

    @classmethod
    def validate_routes(cls) -> None:
        """Fail fast when a route names an extractor the handler lacks"""
        for event, entry in cls.routes.items():
            routes = [entry] if isinstance(entry, EventRoute) else list(entry.values())
            for route in routes:
                if not callable(getattr(cls, route.extractor, None)):
                    raise ValueError(
                        f"{cls.__name__}: route for {event!r} names unknown extractor "
                        f"{route.extractor!r}"
                    )


def verify_signature(
    config: ProviderConfig, signature: Optional[str], body: bytes
) -> SecurityCheckResult:
    """HMAC-SHA256 check shared by providers that sign their payloads"""
    if config.secret_token is None:
        return SecurityCheckResult(success=True)
    if signature is None:
        return SecurityCheckResult(
            success=False, reason="Secret token expected but no signature received"
        )

    expected_signature = "sha256=" + hmac.new(
        config.secret_token.encode(), body, hashlib.sha256
    ).hexdigest()
    if not hmac.compare_digest(signature, expected_signature):
        return SecurityCheckResult(
            success=False, reason="Signature does not match payload"
        )
    return SecurityCheckResult(success=True)


def last_item(items: Any) -> Dict[str, Any]:
    if isinstance(items, list) and items:
        return items[-1] or {}
    return {}
