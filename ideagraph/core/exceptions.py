"""Custom exception hierarchy."""

class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when a generative model API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when a generative model API call times out."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class SourceFileError(AppError):
    """Raised when a source PDF cannot be fetched or decoded."""
    pass


class PipelineError(AppError):
    """Base exception for orchestration errors."""
    pass


class ExtractionError(PipelineError):
    """Idea extraction failed."""
    pass


class LinkingError(PipelineError):
    """Linking (embedding, dedup or classification) failed."""
    pass


class LocatorBackfillError(PipelineError):
    """Locator backfill failed."""
    pass


class DocumentNotFoundError(AppError):
    """Raised when a document is not found."""
    pass


class ProjectNotFoundError(AppError):
    """Raised when a project is not found."""
    pass


class JobNotFoundError(AppError):
    """Raised when a job is not found."""
    pass


class InvalidJobTransitionError(AppError):
    """Raised when a job status change violates the job state machine."""
    pass
