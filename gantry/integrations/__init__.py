"""Integration resolver — maps a provider to its webhook parser and clone URL.

Every provider implements the ``Provider`` protocol.  Adding one means a new
``ProviderId`` member plus an entry in ``PROVIDERS``; the orchestrator and
step runner never change.

Usage::

    from gantry.integrations import clone_url, parse_webhook

    request = parse_webhook(ProviderId.BITBUCKET, raw_body)
    url = clone_url(request.integration, request.owner, request.repo_name)
"""

from __future__ import annotations

import json
from typing import Any, Literal, Protocol, runtime_checkable

from gantry.core.errors import ParseError
from gantry.integrations.bitbucket import BitbucketProvider
from gantry.models.build import BuildRequest, ProviderId


@runtime_checkable
class Provider(Protocol):
    """Protocol every source-control integration must satisfy."""

    def parse_webhook(self, payload: dict[str, Any]) -> BuildRequest:
        """Extract a :class:`BuildRequest` from a decoded webhook payload."""
        ...

    def clone_url(
        self,
        owner: str,
        repo_name: str,
        transport: Literal["ssh", "https"] = "ssh",
    ) -> str:
        """Return the URL to clone ``owner/repo_name`` from."""
        ...


PROVIDERS: dict[ProviderId, Provider] = {
    ProviderId.BITBUCKET: BitbucketProvider(),
}


def get_provider(provider: ProviderId | str) -> Provider:
    """Return the registered provider for *provider*."""
    try:
        return PROVIDERS[ProviderId(provider)]
    except (KeyError, ValueError):
        raise ParseError(f"Unknown integration: {provider!r}", key="integration") from None


def parse_webhook(
    provider: ProviderId | str,
    raw_payload: str | bytes | dict[str, Any],
) -> BuildRequest:
    """Parse a provider-specific webhook payload into a :class:`BuildRequest`.

    Raises
    ------
    ParseError
        If the payload is not a JSON object or misses a required field.
    """
    impl = get_provider(provider)
    if isinstance(raw_payload, (str, bytes)):
        try:
            payload = json.loads(raw_payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ParseError(f"Invalid JSON: {exc}") from exc
    else:
        payload = raw_payload
    if not isinstance(payload, dict):
        raise ParseError(
            f"Webhook payload must be a JSON object, got {type(payload).__name__}"
        )
    return impl.parse_webhook(payload)


def clone_url(
    provider: ProviderId | str,
    owner: str,
    repo_name: str,
    transport: Literal["ssh", "https"] = "ssh",
) -> str:
    """Build the clone URL for ``owner/repo_name`` on *provider*."""
    return get_provider(provider).clone_url(owner, repo_name, transport)


__all__ = [
    "PROVIDERS",
    "Provider",
    "ProviderId",
    "clone_url",
    "get_provider",
    "parse_webhook",
]
