"""Custom exceptions for vtwatch."""


class ScanError(Exception):
    """Base exception for all scan pipeline errors.

    ``retryable`` tells :class:`~vtwatch.engines.scanner.retry.RetryPolicy`
    whether another attempt may succeed.
    """

    retryable: bool = False


class NotFoundError(ScanError):
    """Raised when the file to scan does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"file does not exist: {path}")


class ScanIOError(ScanError):
    """Raised when a file cannot be opened or read."""


class AuthError(ScanError):
    """Raised when the remote service rejects the API key."""


class UploadError(ScanError):
    """Raised on a non-success upload response or a transport failure during upload."""

    retryable = True


class ProtocolError(ScanError):
    """Raised when the remote service returns a malformed or unexpected response."""

    retryable = True


class AnalysisError(ScanError):
    """Raised on a non-success response while polling an analysis."""

    retryable = True


class AnalysisTimeoutError(ScanError):
    """Raised when an analysis does not complete within the poll budget."""

    retryable = True

    def __init__(self, analysis_id: str, polls: int):
        self.analysis_id = analysis_id
        self.polls = polls
        super().__init__(f"analysis {analysis_id} not completed after {polls} polls")


class ServiceUnavailableError(ScanError):
    """Raised when the remote service cannot be reached."""

    retryable = True


class MaxRetriesExceededError(ScanError):
    """Raised when every attempt allowed by the retry budget has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"giving up after {attempts} attempts: {last_error}")


class ConfigError(Exception):
    """Raised when the scanner configuration is missing or invalid."""
