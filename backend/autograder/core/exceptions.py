"""
Exam Autograder - Error Taxonomy
Errors the grading core raises to its callers
"""


class AutograderError(Exception):
    """Base error for the grading core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AutograderError):
    """An exam, session, question or link does not resolve."""

    status_code = 404


class ValidationError(AutograderError):
    """Malformed author or student input. Nothing is persisted."""

    status_code = 422


class ProtocolError(AutograderError):
    """A request is out of sequence with the session state."""

    status_code = 409


class PersistenceError(AutograderError):
    """A storage write failed after the retry policy gave up."""

    status_code = 503


class EvaluatorUnavailable(AutograderError):
    """
    The answer evaluation service failed or timed out.

    Always absorbed inside the grading core; never reaches an HTTP response.
    """

    status_code = 503
