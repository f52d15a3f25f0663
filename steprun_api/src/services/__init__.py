from steprun_api.src.services.github import (
    verify_signature,
    parse_pull_request_payload,
    parse_push_payload,
    event_from_github,
)

__all__ = [
    "verify_signature",
    "parse_pull_request_payload",
    "parse_push_payload",
    "event_from_github",
]
