import pytest

from hooklistener.core.exceptions import UnknownProviderError
from hooklistener.schemas.webhook import InboundRequest, WebhookProvider
from hooklistener.services.provider_detector import ProviderDetector, ip_in_ranges


def make_request(headers=None, remote_address=None):
    return InboundRequest(
        method="POST",
        headers=headers or {},
        remote_address=remote_address,
    )


@pytest.fixture
def detector():
    return ProviderDetector()


def test_detects_gitlab_from_event_header(detector):
    request = make_request({"X-Gitlab-Event": "Push Hook"})
    assert detector.detect(request) == WebhookProvider.GITLAB


def test_detects_github_from_event_header(detector):
    request = make_request({"X-GitHub-Event": "push"})
    assert detector.detect(request) == WebhookProvider.GITHUB


def test_detects_bitbucket_from_event_headers(detector):
    request = make_request({"X-Event-Key": "repo:push", "X-Hook-UUID": "abc"})
    assert detector.detect(request) == WebhookProvider.BITBUCKET


def test_header_wins_over_source_address(detector):
    request = make_request({"X-Gitlab-Event": "Push Hook"}, remote_address="192.30.252.10")
    assert detector.detect(request) == WebhookProvider.GITLAB


@pytest.mark.parametrize(
    "address, provider",
    [
        ("192.30.252.10", WebhookProvider.GITHUB),
        ("85.199.108.1", WebhookProvider.GITHUB),
        ("104.192.143.200", WebhookProvider.BITBUCKET),
        ("34.198.203.127", WebhookProvider.BITBUCKET),
    ],
)
def test_detects_from_source_address(detector, address, provider):
    assert detector.detect(make_request(remote_address=address)) == provider


def test_first_matching_range_wins():
    overlapping = ["10.0.0.0/8"]
    detector = ProviderDetector(
        ip_ranges={
            WebhookProvider.BITBUCKET: overlapping,
            WebhookProvider.GITHUB: overlapping,
        }
    )
    assert detector.detect(make_request(remote_address="10.1.2.3")) == WebhookProvider.BITBUCKET


@pytest.mark.parametrize("address", [None, "127.0.0.1", "testclient", "::1"])
def test_unknown_provider(detector, address):
    with pytest.raises(UnknownProviderError):
        detector.detect(make_request(remote_address=address))


def test_ip_in_ranges():
    assert ip_in_ranges("34.198.178.64", ["34.198.178.64"])
    assert not ip_in_ranges("34.198.178.65", ["34.198.178.64"])
    assert not ip_in_ranges("not-an-ip", ["0.0.0.0/0"])


def test_request_header_keys_are_case_insensitive(detector):
    request = make_request({"X-Gitlab-Event": "Push Hook", "X-GITLAB-TOKEN": "abc"})

    assert request.headers == {"x-gitlab-event": "Push Hook", "x-gitlab-token": "abc"}
    assert request.header("x-GitLab-Event") == "Push Hook"
    assert detector.detect(request) == WebhookProvider.GITLAB
