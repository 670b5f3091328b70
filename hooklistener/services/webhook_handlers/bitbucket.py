from typing import Any, Dict, Optional

from hooklistener.core.config import ProviderConfig
from hooklistener.schemas.task import TaskContext
from hooklistener.schemas.webhook import (
    EventName,
    Issue,
    IssueData,
    IssueState,
    PullRequest,
    PullRequestData,
    RepoPushData,
    RepoRef,
    SecurityCheckResult,
    WebhookProvider,
)

from .base import EventRoute, WebhookHandler, last_item, verify_signature


def _html_link(item: Dict[str, Any]) -> Optional[str]:
    return ((item.get("links") or {}).get("html") or {}).get("href")


class BitBucketWebhookHandler(WebhookHandler):
    """BitBucket event keys already use the canonical event names"""

    provider = WebhookProvider.BITBUCKET
    event_header = "x-event-key"
    signature_header = "x-hub-signature"

    routes = {
        "repo:push": EventRoute(EventName.REPO_PUSH, "extract_repo_push"),
        "issue:created": EventRoute(EventName.ISSUE_CREATED, "extract_issue"),
        "issue:updated": EventRoute(EventName.ISSUE_UPDATED, "extract_issue"),
        "pullrequest:created": EventRoute(
            EventName.PULLREQUEST_CREATED, "extract_pull_request"
        ),
        "pullrequest:updated": EventRoute(
            EventName.PULLREQUEST_UPDATED, "extract_pull_request"
        ),
    }

    state_map = {
        # issues
        "new": IssueState.OPEN,
        "open": IssueState.OPEN,
        "on hold": IssueState.OPEN,
        "resolved": IssueState.CLOSED,
        "closed": IssueState.CLOSED,
        "invalid": IssueState.CLOSED,
        "duplicate": IssueState.CLOSED,
        "wontfix": IssueState.CLOSED,
        # pull requests
        "OPEN": IssueState.OPEN,
        "MERGED": IssueState.CLOSED,
        "DECLINED": IssueState.CLOSED,
        "SUPERSEDED": IssueState.CLOSED,
    }

    def verify(self, config: ProviderConfig, body: bytes = b"") -> SecurityCheckResult:
        return verify_signature(config, self.headers.get(self.signature_header), body)

    def get_repo_data(self, repository: Optional[Dict[str, Any]]) -> RepoRef:
        repository = repository or {}
        return RepoRef(
            name=repository.get("name"),
            full_name=repository.get("full_name"),
            url=_html_link(repository),
        )

    def get_issue_data(self, issue: Dict[str, Any]) -> Issue:
        content = issue.get("content") or {}
        return Issue(
            number=issue.get("id"),
            title=issue.get("title"),
            body=content.get("raw"),
            state=self.map_state(issue.get("state")),
            html_url=_html_link(issue),
        )

    def get_pull_request_data(self, pull_request: Dict[str, Any]) -> PullRequest:
        source = pull_request.get("source") or {}
        destination = pull_request.get("destination") or {}
        return PullRequest(
            number=pull_request.get("id"),
            title=pull_request.get("title"),
            body=pull_request.get("description"),
            state=self.map_state(pull_request.get("state")),
            html_url=_html_link(pull_request),
            source_branch=(source.get("branch") or {}).get("name"),
            source_repo=self.get_repo_data(source.get("repository")),
            target_branch=(destination.get("branch") or {}).get("name"),
            target_repo=self.get_repo_data(destination.get("repository")),
        )

    def extract_repo_push(self) -> RepoPushData:
        return RepoPushData(repository=self.get_repo_data(self.data.get("repository")))

    def extract_issue(self) -> IssueData:
        return IssueData(
            repository=self.get_repo_data(self.data.get("repository")),
            issue=self.get_issue_data(self.data.get("issue") or {}),
        )

    def extract_pull_request(self) -> PullRequestData:
        return PullRequestData(
            repository=self.get_repo_data(self.data.get("repository")),
            pull_request=self.get_pull_request_data(self.data.get("pullrequest") or {}),
        )

    def get_task_context(self, remote_address: Optional[str] = None) -> TaskContext:
        data = self.data or {}
        repository = data.get("repository") or {}
        actor = data.get("actor") or {}
        full_name = repository.get("full_name")
        change = last_item((data.get("push") or {}).get("changes"))
        new = change.get("new") or {}
        target = new.get("target") or {}
        return TaskContext(
            repository=repository.get("name"),
            kind=self.event,
            ssh_url=f"git@bitbucket.org:{full_name}.git" if full_name else None,
            http_url=f"https://bitbucket.org/{full_name}.git" if full_name else None,
            user=actor.get("nickname") or actor.get("display_name"),
            ref=new.get("name"),
            commit_id=target.get("hash"),
            commit_timestamp=target.get("date"),
            commit_message=target.get("message"),
            remote_address=remote_address,
        )
