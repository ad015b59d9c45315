class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} '{resource_id}' not found", code="NOT_FOUND")


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class UpstreamError(AppError):
    """A third-party data source failed. Callers substitute a fallback value."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}", code="UPSTREAM_ERROR")
