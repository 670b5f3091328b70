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

from .base import EventRoute, WebhookHandler, last_item


class GitLabWebhookHandler(WebhookHandler):
    provider = WebhookProvider.GITLAB
    event_header = "x-gitlab-event"
    token_header = "x-gitlab-token"

    routes = {
        "Push Hook": EventRoute(EventName.REPO_PUSH, "extract_repo_push"),
        "Issue Hook": {
            "open": EventRoute(EventName.ISSUE_CREATED, "extract_issue"),
            "update": EventRoute(EventName.ISSUE_UPDATED, "extract_issue"),
        },
        "Merge Request Hook": {
            "open": EventRoute(EventName.PULLREQUEST_CREATED, "extract_pull_request"),
            "update": EventRoute(EventName.PULLREQUEST_UPDATED, "extract_pull_request"),
        },
    }

    state_map = {
        "opened": IssueState.OPEN,
        "closed": IssueState.CLOSED,
        "merged": IssueState.CLOSED,
    }

    def verify(self, config: ProviderConfig, body: bytes = b"") -> SecurityCheckResult:
        token = self.headers.get(self.token_header)
        expected = config.secret_token

        if expected is None and token is None:
            return SecurityCheckResult(success=True)
        if expected is None:
            return SecurityCheckResult(
                success=False, reason="Secret token set in GitLab but not expected"
            )
        if token is None:
            return SecurityCheckResult(
                success=False, reason="Secret token expected but not set in GitLab"
            )
        if token != expected:
            return SecurityCheckResult(
                success=False,
                reason=(
                    "Secret token does not match expected value "
                    f"(received: {token}, expected: {expected})"
                ),
            )
        return SecurityCheckResult(success=True)

    def read_action(self, data: Dict[str, Any]) -> Optional[str]:
        attributes = data.get("object_attributes")
        if isinstance(attributes, dict):
            return attributes.get("action")
        return None

    def get_repo_data(self, project: Optional[Dict[str, Any]]) -> RepoRef:
        project = project or {}
        return RepoRef(
            name=project.get("name"),
            full_name=project.get("path_with_namespace"),
            url=project.get("web_url"),
        )

    def get_issue_data(self, issue: Dict[str, Any]) -> Issue:
        return Issue(
            number=issue.get("iid"),
            title=issue.get("title"),
            body=issue.get("description"),
            state=self.map_state(issue.get("state")),
            html_url=issue.get("url"),
        )

    def get_pull_request_data(self, merge_request: Dict[str, Any]) -> PullRequest:
        return PullRequest(
            number=merge_request.get("iid"),
            title=merge_request.get("title"),
            body=merge_request.get("description"),
            state=self.map_state(merge_request.get("state")),
            html_url=merge_request.get("url"),
            source_branch=merge_request.get("source_branch"),
            source_repo=self.get_repo_data(merge_request.get("source")),
            target_branch=merge_request.get("target_branch"),
            target_repo=self.get_repo_data(merge_request.get("target")),
        )

    def extract_repo_push(self) -> RepoPushData:
        return RepoPushData(repository=self.get_repo_data(self.data.get("project")))

    def extract_issue(self) -> IssueData:
        return IssueData(
            repository=self.get_repo_data(self.data.get("project")),
            issue=self.get_issue_data(self.data.get("object_attributes") or {}),
        )

    def extract_pull_request(self) -> PullRequestData:
        return PullRequestData(
            repository=self.get_repo_data(self.data.get("project")),
            pull_request=self.get_pull_request_data(
                self.data.get("object_attributes") or {}
            ),
        )

    def get_task_context(self, remote_address: Optional[str] = None) -> TaskContext:
        data = self.data or {}
        repository = data.get("repository") or {}
        project = data.get("project") or {}
        user = data.get("user") or {}
        commit = last_item(data.get("commits"))
        return TaskContext(
            repository=repository.get("name") or project.get("name"),
            kind=data.get("object_kind"),
            ssh_url=repository.get("git_ssh_url") or project.get("git_ssh_url"),
            http_url=repository.get("git_http_url") or project.get("git_http_url"),
            user=data.get("user_name") or user.get("username"),
            ref=data.get("ref"),
            commit_id=commit.get("id"),
            commit_timestamp=commit.get("timestamp"),
            commit_message=commit.get("message"),
            remote_address=remote_address,
        )
