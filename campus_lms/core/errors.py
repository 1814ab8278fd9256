"""
Domain errors raised by the submission and grading core.

None of these are caught inside the core. The HTTP layer renders them through
the handler registered in ``campus_lms.main``.
"""


class LmsError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidStateTransition(LmsError):
    status_code = 409

    def __init__(self, current: str, requested: str, reason: str | None = None):
        self.current = current
        self.requested = requested
        message = f"Cannot move submission from '{current}' to '{requested}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MissingGradingConfig(LmsError):
    status_code = 422


class ScoreOutOfRange(LmsError):
    status_code = 422


class AttemptLimitExceeded(LmsError):
    status_code = 409

    def __init__(self, attempt_number: int, max_attempts: int):
        self.attempt_number = attempt_number
        self.max_attempts = max_attempts
        super().__init__(
            f"Maximum submission attempts ({max_attempts}) exceeded "
            f"(current attempt {attempt_number})"
        )


class ContentNotPublished(LmsError):
    status_code = 403


class LateSubmissionNotAllowed(LmsError):
    status_code = 409


class InvalidGroupSubmission(LmsError):
    status_code = 400
