from .base import EventRoute, WebhookHandler
from .bitbucket import BitBucketWebhookHandler
from .github import GitHubWebhookHandler
from .gitlab import GitLabWebhookHandler

__all__ = [
    "EventRoute",
    "WebhookHandler",
    "BitBucketWebhookHandler",
    "GitHubWebhookHandler",
    "GitLabWebhookHandler",
]
