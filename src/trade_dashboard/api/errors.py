from __future__ import annotations


class BackendError(RuntimeError):
    """Transport failure talking to the dashboard backend."""


class ResultShapeError(BackendError):
    """A tool result is missing the field this client reads from it."""
