from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WebhookProvider(str, Enum):
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


class EventName(str, Enum):
    REPO_PUSH = "repo:push"
    ISSUE_CREATED = "issue:created"
    ISSUE_UPDATED = "issue:updated"
    PULLREQUEST_CREATED = "pullrequest:created"
    PULLREQUEST_UPDATED = "pullrequest:updated"


class IssueState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class InboundRequest(BaseModel):
    """What the listener captured from the wire, before anything is trusted"""

    model_config = ConfigDict(frozen=True)

    method: str
    headers: Dict[str, str]  # lower-cased keys
    body: bytes = b""
    remote_address: Optional[str] = None

    @field_validator("headers", mode="before")
    @classmethod
    def _lower_case_keys(cls, headers):
        if isinstance(headers, dict):
            return {str(key).lower(): value for key, value in headers.items()}
        return headers

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class SecurityCheckResult(BaseModel):
    success: bool
    reason: Optional[str] = None


class RepoRef(BaseModel):
    name: Optional[str] = None
    full_name: Optional[str] = None
    url: Optional[str] = None


class Issue(BaseModel):
    number: Optional[int] = None
    title: Optional[str] = None
    body: Optional[str] = None
    state: Optional[IssueState] = None
    html_url: Optional[str] = None


class PullRequest(BaseModel):
    number: Optional[int] = None
    title: Optional[str] = None
    body: Optional[str] = None
    state: Optional[IssueState] = None
    html_url: Optional[str] = None
    source_branch: Optional[str] = None
    source_repo: Optional[RepoRef] = None
    target_branch: Optional[str] = None
    target_repo: Optional[RepoRef] = None


class RepoPushData(BaseModel):
    repository: RepoRef


class IssueData(BaseModel):
    repository: RepoRef
    issue: Issue


class PullRequestData(BaseModel):
    repository: RepoRef
    pull_request: PullRequest


EventPayload = Union[PullRequestData, IssueData, RepoPushData]


class CanonicalEvent(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    provider: WebhookProvider
    event_name: EventName  # e.g. "repo:push", "issue:created"
    data: EventPayload
    raw_payload: Dict[str, Any] = Field(default_factory=dict)  # Original provider-specific payload

    @property
    def repository(self) -> RepoRef:
        return self.data.repository
