"""Exceptions raised by the invoice drafting workflow."""

from __future__ import annotations

from typing import Iterable


class InvoiceDeskError(Exception):
    """Base class for all errors of this package."""


class DraftValidationError(InvoiceDeskError, ValueError):
    """The draft is incomplete and cannot move on to review."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class WorkflowStateError(InvoiceDeskError):
    """An event arrived in a state that does not accept it."""

    def __init__(self, event: str, state: str) -> None:
        self.event = event
        self.state = state
        super().__init__(f"'{event}' is not allowed while {state}")


class LoadError(InvoiceDeskError):
    """A catalog collection could not be fetched."""

    def __init__(self, collection: str, reason: str) -> None:
        self.collection = collection
        self.reason = reason
        super().__init__(f"Failed to load {collection}: {reason}")


class SubmissionError(InvoiceDeskError):
    """The billing gateway did not create the invoice."""

    FAILED = "failed"
    TIMEOUT = "timeout"

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(message)
