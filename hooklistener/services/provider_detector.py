"""Work out which provider sent a webhook.

Headers are checked first, in a fixed order. Providers that may deliver
without an identifying header fall back to their published address ranges,
again in a fixed order, so the first match wins when ranges overlap.
"""
import ipaddress
import logging
from typing import Callable, Dict, List, Optional, Tuple

from hooklistener.core.exceptions import UnknownProviderError
from hooklistener.schemas.webhook import InboundRequest, WebhookProvider

logger = logging.getLogger(__name__)


def _has_gitlab_headers(request: InboundRequest) -> bool:
    return request.header("X-Gitlab-Event") is not None


def _has_github_headers(request: InboundRequest) -> bool:
    return request.header("X-GitHub-Event") is not None


def _has_bitbucket_headers(request: InboundRequest) -> bool:
    return (
        request.header("X-Event-Key") is not None
        and request.header("X-Hook-UUID") is not None
    )


HEADER_CHECKS: List[Tuple[WebhookProvider, Callable[[InboundRequest], bool]]] = [
    (WebhookProvider.GITLAB, _has_gitlab_headers),
    (WebhookProvider.GITHUB, _has_github_headers),
    (WebhookProvider.BITBUCKET, _has_bitbucket_headers),
]

# Published webhook source addresses. GitLab does not publish any.
IP_RANGES: Dict[WebhookProvider, List[str]] = {
    # https://confluence.atlassian.com/bitbucket/what-are-the-bitbucket-cloud-ip-addresses-i-should-use-to-configure-my-corporate-firewall-343343385.html
    WebhookProvider.BITBUCKET: [
        "104.192.143.192/28",
        "104.192.143.208/28",
        "104.192.143.0/24",
        "34.198.203.127",
        "34.198.178.64",
    ],
    # https://help.github.com/articles/github-s-ip-addresses/#service-hook-ip-addresses
    WebhookProvider.GITHUB: ["192.30.252.0/22", "85.199.108.0/22"],
}


def ip_in_ranges(address: str, ranges: List[str]) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(ip in ipaddress.ip_network(cidr, strict=False) for cidr in ranges)


class ProviderDetector:
    def __init__(
        self,
        header_checks: Optional[
            List[Tuple[WebhookProvider, Callable[[InboundRequest], bool]]]
        ] = None,
        ip_ranges: Optional[Dict[WebhookProvider, List[str]]] = None,
    ):
        self.header_checks = HEADER_CHECKS if header_checks is None else header_checks
        self.ip_ranges = IP_RANGES if ip_ranges is None else ip_ranges

    def detect(self, request: InboundRequest) -> WebhookProvider:
        for provider, matches in self.header_checks:
            if matches(request):
                return provider

        address = request.remote_address
        if address:
            for provider, ranges in self.ip_ranges.items():
                if ip_in_ranges(address, ranges):
                    logger.info(f"Detected {provider.value} from source address {address}")
                    return provider

        raise UnknownProviderError(
            f"Unable to identify webhook provider (source address: {address})"
        )
