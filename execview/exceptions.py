"""
exceptions.py — Error taxonomy shared by the store, service and orchestrator.

    StoreUnavailable           — store used before open(); fatal for the call
    TransactionFailed          — sqlite / I-O failure; surfaced with a generic message
    SimulatedTransientFailure  — injected service failure; caller may retry manually
    NotFound                   — requested id absent
"""


class ExecViewError(Exception):
    """Base class for every error raised by the core."""

    #: Non-technical text shown to end users.
    user_message = "Something went wrong. Please try again."


class StoreUnavailable(ExecViewError):
    user_message = "Failed to initialize database. Please try again."


class TransactionFailed(ExecViewError):
    user_message = "Failed to save or load data. Please try again."


class SimulatedTransientFailure(ExecViewError):
    user_message = "The service is temporarily unavailable. Please try again."


class NotFound(ExecViewError):
    user_message = "The requested item could not be found."

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{record_id!r} not found in {collection!r}")
        self.collection = collection
        self.record_id = record_id
