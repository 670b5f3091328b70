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


class GitHubWebhookHandler(WebhookHandler):
    provider = WebhookProvider.GITHUB
    event_header = "x-github-event"
    signature_header = "x-hub-signature-256"

    routes = {
        "push": EventRoute(EventName.REPO_PUSH, "extract_repo_push"),
        "issues": {
            "opened": EventRoute(EventName.ISSUE_CREATED, "extract_issue"),
            "edited": EventRoute(EventName.ISSUE_UPDATED, "extract_issue"),
        },
        "pull_request": {
            "opened": EventRoute(EventName.PULLREQUEST_CREATED, "extract_pull_request"),
            "edited": EventRoute(EventName.PULLREQUEST_UPDATED, "extract_pull_request"),
            "synchronize": EventRoute(
                EventName.PULLREQUEST_UPDATED, "extract_pull_request"
            ),
        },
    }

    state_map = {
        "open": IssueState.OPEN,
        "closed": IssueState.CLOSED,
    }

    def verify(self, config: ProviderConfig, body: bytes = b"") -> SecurityCheckResult:
        # Unsigned deliveries are accepted as long as no secret is configured
        return verify_signature(config, self.headers.get(self.signature_header), body)

    def read_action(self, data: Dict[str, Any]) -> Optional[str]:
        return data.get("action")

    def get_repo_data(self, repository: Optional[Dict[str, Any]]) -> RepoRef:
        repository = repository or {}
        return RepoRef(
            name=repository.get("name"),
            full_name=repository.get("full_name"),
            url=repository.get("html_url"),
        )

    def get_issue_data(self, issue: Dict[str, Any]) -> Issue:
        return Issue(
            number=issue.get("number"),
            title=issue.get("title"),
            body=issue.get("body"),
            state=self.map_state(issue.get("state")),
            html_url=issue.get("html_url"),
        )

    def get_pull_request_data(self, pull_request: Dict[str, Any]) -> PullRequest:
        head = pull_request.get("head") or {}
        base = pull_request.get("base") or {}
        return PullRequest(
            number=pull_request.get("number"),
            title=pull_request.get("title"),
            body=pull_request.get("body"),
            state=self.map_state(pull_request.get("state")),
            html_url=pull_request.get("html_url"),
            source_branch=head.get("ref"),
            source_repo=self.get_repo_data(head.get("repo")),
            target_branch=base.get("ref"),
            target_repo=self.get_repo_data(base.get("repo")),
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
            pull_request=self.get_pull_request_data(self.data.get("pull_request") or {}),
        )

    def get_task_context(self, remote_address: Optional[str] = None) -> TaskContext:
        data = self.data or {}
        repository = data.get("repository") or {}
        pusher = data.get("pusher") or {}
        sender = data.get("sender") or {}
        commit = data.get("head_commit") or last_item(data.get("commits"))
        return TaskContext(
            repository=repository.get("name"),
            kind=self.event,
            ssh_url=repository.get("ssh_url"),
            http_url=repository.get("clone_url"),
            user=pusher.get("name") or sender.get("login"),
            ref=data.get("ref"),
            commit_id=commit.get("id"),
            commit_timestamp=commit.get("timestamp"),
            commit_message=commit.get("message"),
            remote_address=remote_address,
        )
