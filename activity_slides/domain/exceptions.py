from typing import Any, List, Optional


class ActivitySlidesError(Exception):
    """Base class for every recoverable failure raised by the core."""


class ActivityNotFoundError(ActivitySlidesError):
    def __init__(self, activity_id: str):
        super().__init__(f"No activity with ID {activity_id!r}")
        self.activity_id = activity_id


class InvalidDataError(ActivitySlidesError):
    """
    A record exists but fails its required-field contract.
    `problems` lists every offending field so it can be logged in one line.
    """
    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.problems = list(problems or [])


class TransportFailureError(ActivitySlidesError):
    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"


class ExportAbortedError(ActivitySlidesError):
    """The operator declined the export dialog. Not a failure; callers treat it as a no-op."""


class PipelineInsertionError(ActivitySlidesError):
    def __init__(self, section_tag: str, completed: int, total: int, cause: BaseException):
        super().__init__(
            f"Inserting a {section_tag} slide failed after {completed}/{total} slides: {cause}"
        )
        self.section_tag = section_tag
        self.completed = completed
        self.total = total
        self.cause = cause


class ActionUnavailableError(ActivitySlidesError):
    def __init__(self, control: str, reason: str = ""):
        super().__init__(f"{control} is not available right now" + (f": {reason}" if reason else ""))
        self.control = control
        self.reason = reason
