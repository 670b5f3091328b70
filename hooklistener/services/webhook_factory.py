from typing import Dict, Mapping, Type

from hooklistener.schemas.webhook import WebhookProvider
from hooklistener.services.webhook_handlers import (
    BitBucketWebhookHandler,
    GitHubWebhookHandler,
    GitLabWebhookHandler,
    WebhookHandler,
)


class WebhookHandlerFactory:
    _handlers: Dict[WebhookProvider, Type[WebhookHandler]] = {}

    @classmethod
    def initialize(cls):
        handlers = {
            WebhookProvider.GITHUB: GitHubWebhookHandler,
            WebhookProvider.GITLAB: GitLabWebhookHandler,
            WebhookProvider.BITBUCKET: BitBucketWebhookHandler,
        }
        for handler_class in handlers.values():
            handler_class.validate_routes()
        cls._handlers = handlers

    @classmethod
    def get_handler(
        cls, provider: WebhookProvider, headers: Mapping[str, str]
    ) -> WebhookHandler:
        """Build a fresh handler for one request"""
        if not cls._handlers:
            cls.initialize()
        if provider not in cls._handlers:
            raise KeyError(f"No handler registered for provider: {provider}")
        return cls._handlers[provider](headers)
