"""
Unique Jobs Error Definitions

Optimistic-transaction conflicts and duplicate rejections are normal
decision outcomes and never raise.
"""


class UniqueJobsError(Exception):
    """Base error for all unique-jobs errors."""

    def __init__(self, message: str, code: str = "UNIQUE_JOBS_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class StoreUnavailableError(UniqueJobsError):
    """The dedup store could not be reached or timed out."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message, "STORE_UNAVAILABLE")
        self.operation = operation


class RetrySetQueryError(UniqueJobsError):
    """Scanning the retry set failed."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message, "RETRY_SET_QUERY_FAILED")
        self.key = key


class ConfigurationError(UniqueJobsError):
    """Uniqueness options for a job type are invalid."""

    def __init__(self, message: str, job_type: str | None = None):
        super().__init__(message, "INVALID_CONFIGURATION")
        self.job_type = job_type
