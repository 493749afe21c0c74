# app/errors.py


class LessonError(Exception):
    """Base class for failures the /fact endpoint reports to the caller."""

    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(LessonError):
    http_status = 400


class UpstreamUnavailable(LessonError):
    """A search, summary or generative backend call did not succeed."""


class ModelOutputMalformed(LessonError):
    """The generative backend replied with nothing usable and no fallback exists."""


class ExhaustedError(LessonError):
    """No candidate term produced a relevant article."""


class DeadlineExceeded(LessonError):
    pass
