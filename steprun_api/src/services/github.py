"""
GitHub webhook validation and payload mapping.
"""

import hmac
import hashlib
from typing import Optional, Dict, Any

from steprun_controller.src.models.event import Event, EventKind

PULL_REQUEST_ACTIONS = {
    "opened": EventKind.PULL_REQUEST_OPENED,
    "synchronize": EventKind.PULL_REQUEST_UPDATED,
    "edited": EventKind.PULL_REQUEST_UPDATED,
    "reopened": EventKind.PULL_REQUEST_REOPENED,
    "closed": EventKind.PULL_REQUEST_CLOSED,
}

def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """Verify GitHub webhook signature."""
    if not secret:
        # Skip verification if no secret configured (development)
        return True
    if not signature:
        return False

    expected = "sha256=" + hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)

def parse_pull_request_payload(payload: Dict[str, Any]) -> Optional[Event]:
    """Map a pull_request webhook to an Event, or None for actions we ignore."""
    kind = PULL_REQUEST_ACTIONS.get(payload.get("action", ""))
    if kind is None:
        return None

    pr = payload.get("pull_request", {})
    head = pr.get("head", {})
    base = pr.get("base", {})
    repo = payload.get("repository", {})

    return Event(
        kind=kind,
        metadata={
            "repo_name": repo.get("name", ""),
            "repo_full_name": repo.get("full_name", ""),
            # Forks: the head commit lives in the head repository
            "clone_url": head.get("repo", {}).get("clone_url") or repo.get("clone_url", ""),
            "number": payload.get("number", pr.get("number")),
            "head_sha": head.get("sha", ""),
            "head_branch": head.get("ref", ""),
            "base_branch": base.get("ref", ""),
            "title": pr.get("title", ""),
            "sender": payload.get("sender", {}).get("login", ""),
        },
    )

def parse_push_payload(payload: Dict[str, Any]) -> Event:
    """Map a push webhook to an Event."""
    repo = payload.get("repository", {})
    head_commit = payload.get("head_commit") or {}

    # refs/heads/main -> main
    ref = payload.get("ref", "")
    branch = ref.replace("refs/heads/", "") if ref.startswith("refs/heads/") else ref

    return Event(
        kind=EventKind.PUSH,
        metadata={
            "repo_name": repo.get("name", ""),
            "repo_full_name": repo.get("full_name", ""),
            "clone_url": repo.get("clone_url", ""),
            "head_sha": head_commit.get("id", payload.get("after", "")),
            "head_branch": branch,
            "commit_message": head_commit.get("message", ""),
            "sender": payload.get("pusher", {}).get("name", ""),
        },
    )

def event_from_github(event_name: Optional[str], payload: Dict[str, Any]) -> Optional[Event]:
    if event_name == "pull_request":
        return parse_pull_request_payload(payload)
    if event_name == "push":
        return parse_push_payload(payload)
    return None
