from typing import Optional


class ResultLookupError(Exception):
    """Base for every failure of a single roll number lookup."""

    kind = "Error"

    def __init__(self, message: str, htno: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.htno = htno

    def to_dict(self):
        payload = {"kind": self.kind, "message": self.message}
        if self.htno:
            payload["htno"] = self.htno
        return payload


class InvalidInputError(ResultLookupError):
    kind = "InvalidInput"


class FetchTimeoutError(ResultLookupError):
    kind = "Timeout"


class NetworkError(ResultLookupError):
    kind = "NetworkError"

    def __init__(self, message: str, htno: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, htno)
        self.status_code = status_code


class ParseError(ResultLookupError):
    kind = "ParseError"


class EmptyResponseError(ParseError):
    """The portal answered, but with something too short to be a results page."""
