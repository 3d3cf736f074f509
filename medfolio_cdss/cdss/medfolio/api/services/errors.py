class ConflictCheckError(Exception):
    """The medication conflict flow failed. Callers show a generic retry message."""


class InputValidationError(ConflictCheckError):
    """The request was malformed and no remote call was made."""


class RemoteCallError(ConflictCheckError):
    """The text-generation service could not be reached or returned an error."""


class OutputValidationError(ConflictCheckError):
    """The service answered, but not with a valid conflict result."""
