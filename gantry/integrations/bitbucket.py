"""Bitbucket integration.

Webhook documentation:
https://confluence.atlassian.com/bitbucket/manage-webhooks-735643732.html

A push payload is walked along a fixed path::

    actor, repository, push.changes[0].new.target.hash

Every missing key or type mismatch raises :class:`ParseError` naming the key.
"""

from __future__ import annotations

from typing import Any, Literal

from gantry.core.errors import ParseError
from gantry.models.build import BuildRequest, ProviderId

HOST = "bitbucket.org"


class BitbucketProvider:
    """Parse Bitbucket push payloads and build clone URLs."""

    provider_id = ProviderId.BITBUCKET

    def parse_webhook(self, payload: dict[str, Any]) -> BuildRequest:
        owner = _get_str(payload, "actor")
        repo_name = _get_str(payload, "repository")
        push = _get_obj(payload, "push")
        changes = _get_array(push, "changes")
        first_change = _get_index(changes, 0)
        new = _get_obj(first_change, "new")
        target = _get_obj(new, "target")
        commit = _get_str(target, "hash")
        return BuildRequest(
            integration=self.provider_id,
            owner=owner,
            repo_name=repo_name,
            commit=commit,
        )

    def clone_url(
        self,
        owner: str,
        repo_name: str,
        transport: Literal["ssh", "https"] = "ssh",
    ) -> str:
        if transport == "https":
            return f"https://{HOST}/{owner}/{repo_name}"
        return f"git@{HOST}:{owner}/{repo_name}.git"


# ---------------------------------------------------------------------------
# JSON walking helpers
# ---------------------------------------------------------------------------


def _get(val: Any, key: str) -> Any:
    if not isinstance(val, dict) or key not in val:
        raise ParseError(f"No \"{key}\" in json", key=key)
    return val[key]


def _get_str(val: Any, key: str) -> str:
    found = _get(val, key)
    if not isinstance(found, str):
        raise ParseError(f"\"{key}\" is not string", key=key)
    return found


def _get_obj(val: Any, key: str) -> dict[str, Any]:
    found = _get(val, key)
    if not isinstance(found, dict):
        raise ParseError(f"\"{key}\" is not object", key=key)
    return found


def _get_array(val: Any, key: str) -> list[Any]:
    found = _get(val, key)
    if not isinstance(found, list):
        raise ParseError(f"\"{key}\" is not array", key=key)
    return found


def _get_index(val: list[Any], index: int) -> Any:
    if index >= len(val):
        raise ParseError(f"No \"{index}\" in json", key=str(index))
    return val[index]
