"""
Client Directory - Error Taxonomy

Validation and not-found conditions are signals the HTTP layer turns into
response codes. Encryption failures live in utils.encryption.
"""

from typing import Iterable, List, Optional


class DirectoryError(Exception):
    """Base exception for client directory errors"""
    pass


class ValidationError(DirectoryError):
    """
    One or more fields are missing or malformed.

    Attributes:
        fields: Offending field names, in the order they were checked
        kind: 'missing' or 'invalid'
    """

    MISSING = "missing"
    INVALID = "invalid"

    def __init__(self, fields: Iterable[str], kind: str = INVALID, message: Optional[str] = None):
        self.fields: List[str] = list(fields)
        self.kind = kind
        super().__init__(message or f"{kind} fields: {', '.join(self.fields)}")


class SearchCriteriaError(ValidationError):
    """Search criteria is not a list of {field, query} entries"""

    def __init__(self, message: str):
        super().__init__(["criteria"], ValidationError.INVALID, message)


class ExternalServiceUnavailable(DirectoryError):
    """The phone verification service could not be reached"""
    pass
