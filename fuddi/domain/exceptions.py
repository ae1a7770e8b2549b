"""
Domain exceptions
"""
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .entities import ValidationIssue


class FuddiError(Exception):
    """Base class for errors raised by the order workflow"""


class ValidationFailed(FuddiError):
    """Input rejected locally, never sent to the backend"""

    def __init__(self, issues: List["ValidationIssue"]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))


class NotFound(FuddiError):
    """Referenced document does not exist"""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key} not found")


class Conflict(FuddiError):
    """Write would violate a uniqueness or lifecycle rule"""


class InvalidLocation(FuddiError):
    """Raw location input could not be parsed or is out of range"""


class SubmissionInProgress(Conflict):
    """A submission for this draft is already in flight"""

    def __init__(self, draft_id: str):
        self.draft_id = draft_id
        super().__init__(f"Draft {draft_id} is already being submitted")


class BusinessUnavailable(NotFound):
    """Business context could not be loaded; the workflow cannot run at all"""

    def __init__(self, business_id: str):
        super().__init__("Business", business_id)
