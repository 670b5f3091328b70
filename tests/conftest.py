import hashlib
import hmac
import json
from typing import Any, Dict, Tuple

import pytest
from fastapi.testclient import TestClient

from hooklistener.core.config import ListenerConfig
from hooklistener.main import create_app
from hooklistener.services.task_runner import TaskRunner
from hooklistener.services.webhook_listener import WebhookListener


@pytest.fixture
def gitlab_push_payload():
    return {
        "object_kind": "push",
        "ref": "refs/heads/master",
        "user_name": "John Smith",
        "project": {
            "name": "Diaspora",
            "web_url": "http://example.com/mike/diaspora",
            "path_with_namespace": "mike/diaspora",
            "git_ssh_url": "git@example.com:mike/diaspora.git",
            "git_http_url": "http://example.com/mike/diaspora.git",
        },
        "repository": {
            "name": "Diaspora",
            "url": "git@example.com:mike/diaspora.git",
            "homepage": "http://example.com/mike/diaspora",
            "git_http_url": "http://example.com/mike/diaspora.git",
            "git_ssh_url": "git@example.com:mike/diaspora.git",
        },
        "commits": [
            {
                "id": "b6568db1bc1dcd7f8b4d5a946b0b91f9dacd7327",
                "message": "Update Catalan translation to e38cb41.",
                "timestamp": "2011-12-12T14:27:31+02:00",
            },
            {
                "id": "da1560886d4f094c3e6c9ef40349f7d38b5d27d7",
                "message": "fixed readme",
                "timestamp": "2012-01-03T23:36:29+02:00",
            },
        ],
    }


@pytest.fixture
def gitlab_issue_payload():
    return {
        "object_kind": "issue",
        "user": {"name": "Administrator", "username": "root"},
        "project": {
            "name": "Gitlab Test",
            "web_url": "http://example.com/gitlabhq/gitlab-test",
            "path_with_namespace": "gitlabhq/gitlab-test",
        },
        "repository": {
            "name": "Gitlab Test",
            "url": "http://example.com/gitlabhq/gitlab-test.git",
        },
        "object_attributes": {
            "iid": 23,
            "title": "New API: create/update/delete file",
            "description": "Create new API for manipulations with repository",
            "state": "opened",
            "url": "http://example.com/diaspora/issues/23",
            "action": "open",
        },
    }


@pytest.fixture
def gitlab_merge_request_payload():
    return {
        "object_kind": "merge_request",
        "user": {"name": "Administrator", "username": "root"},
        "project": {
            "name": "Gitlab Test",
            "web_url": "http://example.com/gitlabhq/gitlab-test",
            "path_with_namespace": "gitlabhq/gitlab-test",
        },
        "object_attributes": {
            "iid": 1,
            "title": "MS-Viewport",
            "description": "",
            "state": "opened",
            "url": "http://example.com/diaspora/merge_requests/1",
            "source_branch": "ms-viewport",
            "target_branch": "master",
            "source": {
                "name": "Awesome Project",
                "web_url": "http://example.com/awesome_space/awesome_project",
                "path_with_namespace": "awesome_space/awesome_project",
            },
            "target": {
                "name": "Gitlab Test",
                "web_url": "http://example.com/gitlabhq/gitlab-test",
                "path_with_namespace": "gitlabhq/gitlab-test",
            },
            "action": "open",
        },
    }


@pytest.fixture
def github_push_payload():
    return {
        "ref": "refs/heads/main",
        "repository": {
            "name": "Hello-World",
            "full_name": "octocat/Hello-World",
            "html_url": "https://github.com/octocat/Hello-World",
            "ssh_url": "git@github.com:octocat/Hello-World.git",
            "clone_url": "https://github.com/octocat/Hello-World.git",
        },
        "pusher": {"name": "octocat", "email": "octocat@github.com"},
        "head_commit": {
            "id": "7fd1a60b01f91b314f59955a4e4d4e80d8edf11d",
            "message": "Update README.md",
            "timestamp": "2024-01-01T00:00:00Z",
        },
    }


@pytest.fixture
def github_pull_request_payload():
    repository = {
        "name": "repo",
        "full_name": "test/repo",
        "html_url": "https://github.com/test/repo",
    }
    return {
        "action": "opened",
        "pull_request": {
            "number": 1,
            "title": "Test Pull Request",
            "body": "Test PR Description",
            "state": "open",
            "html_url": "https://github.com/test/repo/pull/1",
            "head": {"ref": "feature", "repo": repository},
            "base": {"ref": "main", "repo": repository},
        },
        "repository": repository,
        "sender": {"login": "test-user"},
    }


@pytest.fixture
def bitbucket_pull_request_payload():
    repository = {
        "name": "repo",
        "full_name": "team/repo",
        "links": {"html": {"href": "https://bitbucket.org/team/repo"}},
    }
    return {
        "actor": {"nickname": "jdoe", "display_name": "Jane Doe"},
        "repository": repository,
        "pullrequest": {
            "id": 7,
            "title": "Add feature",
            "description": "Adds the feature",
            "state": "MERGED",
            "links": {"html": {"href": "https://bitbucket.org/team/repo/pull-requests/7"}},
            "source": {"branch": {"name": "feature"}, "repository": repository},
            "destination": {"branch": {"name": "master"}, "repository": repository},
        },
    }


@pytest.fixture
def webhook_signature():
    """Fixture to generate webhook signatures for testing"""
    def _generate_signature(webhook_secret: str, payload: Dict[str, Any]) -> Tuple[str, bytes]:
        payload_bytes = json.dumps(payload).encode()
        signature = hmac.new(
            key=webhook_secret.encode(),
            msg=payload_bytes,
            digestmod=hashlib.sha256
        ).hexdigest()
        return f"sha256={signature}", payload_bytes

    return _generate_signature


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def make_client(workspace_root):
    """Build a test client around a listener with the given configuration"""
    def _make_client(callback=None, **config) -> Tuple[TestClient, WebhookListener]:
        listener_config = ListenerConfig.model_validate(config)
        runner = TaskRunner(
            cmdshell=listener_config.cmdshell,
            keep=listener_config.keep,
            failure_policy=listener_config.failure_policy,
            base_dir=str(workspace_root),
        )
        listener = WebhookListener(listener_config, callback=callback, runner=runner)
        return TestClient(create_app(listener)), listener

    return _make_client
