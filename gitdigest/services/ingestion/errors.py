from __future__ import annotations

from typing import Optional


class IngestError(Exception):
    """Base error for a failed ingestion; carries an HTTP-equivalent status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidReference(IngestError):
    status_code = 400


class AuthenticationFailed(IngestError):
    status_code = 401


class NotFound(IngestError):
    status_code = 404


class NetworkOrProtocolError(IngestError):
    pass


class UnsupportedProvider(IngestError):
    pass


AUTH_MARKERS = (
    "authentication failed",
    "access denied",
    # git with terminal prompts disabled, asked for credentials
    "could not read username",
)
NOT_FOUND_MARKERS = ("not found", "does not exist")


def classify_failure(detail: str, status: Optional[int] = None) -> IngestError:
    """
    Map an HTTP status or a Git client error message onto the taxonomy.
    When a status is given it decides alone; the message text is only
    inspected for failures that carry no status.
    """
    if status is not None:
        auth = status in (401, 403)
        missing = status == 404
    else:
        text = (detail or "").lower()
        auth = any(m in text for m in AUTH_MARKERS)
        missing = any(m in text for m in NOT_FOUND_MARKERS)

    if auth:
        return AuthenticationFailed(
            "Authentication failed. Check your token and repository access."
        )
    if missing:
        return NotFound("Repository not found. Check the URL, branch and permissions.")

    return NetworkOrProtocolError(f"Failed to fetch repository: {detail}".strip())
