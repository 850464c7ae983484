"""Exceptions raised across the snapshot engine.

Provider transport failures live with the adapters (llm/providers/base.py)
because they never escape a single provider call.
"""

from typing import Optional


class VrtlError(Exception):
    """Base class for engine errors."""


class ClientNotFound(VrtlError):
    def __init__(self, client_id: str):
        super().__init__(f"Client not found: {client_id}")
        self.client_id = client_id


class SnapshotAlreadyRunning(VrtlError):
    """A run was requested while the client already has a running snapshot."""

    def __init__(self, client_id: str, running_snapshot_id: Optional[str] = None):
        super().__init__(f"Snapshot already running for client {client_id}")
        self.client_id = client_id
        self.running_snapshot_id = running_snapshot_id


class SnapshotRateLimited(VrtlError):
    def __init__(self, message: str, retry_after_seconds: Optional[float] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class PromptPackError(VrtlError):
    """Prompt pack file is missing or malformed."""


class NoProvidersEnabled(VrtlError):
    """No provider credential is configured, or none is wired into the run path."""
