from functools import lru_cache

from hooklistener.core.config import load_listener_config
from hooklistener.services.webhook_listener import WebhookListener


@lru_cache
def get_listener() -> WebhookListener:
    """Listener built from the process-wide configuration, created once"""
    return WebhookListener(load_listener_config())
