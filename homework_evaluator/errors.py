from threading import Event
from typing import Optional


class HomeworkEvaluatorError(Exception):
    """Base class for errors raised by the evaluator."""


class AuthenticationError(HomeworkEvaluatorError, RuntimeError):
    """OAuth authorization against Google failed. Fatal for the run."""


class FolderNotFoundError(HomeworkEvaluatorError, LookupError):
    pass


class AmbiguousFolderError(HomeworkEvaluatorError, LookupError):
    def __init__(self, folder_name: str, matches: list):
        self.folder_name = folder_name
        self.matches = matches
        names = ", ".join(f"{m.get('name')} (ID: {m.get('id')})" for m in matches)
        super().__init__(f"Found several folders named exactly '{folder_name}': {names}")


class RemoteCallError(HomeworkEvaluatorError, RuntimeError):
    """The completion endpoint answered with a non-success status or could not be reached."""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Error calling the completion endpoint: {status_code} - {body}")


class DeserializationError(HomeworkEvaluatorError, ValueError):
    pass


class MockFixtureNotFoundError(HomeworkEvaluatorError, FileNotFoundError):
    pass


class OperationCancelled(HomeworkEvaluatorError):
    pass


def ensure_not_cancelled(cancel: Optional[Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Operation cancelled")
