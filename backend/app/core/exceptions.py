class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class InvalidConstraintError(AppError):
    """Raised when an exclusion pair cannot be stored (self-pair or unknown item)."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class InfeasibleError(AppError):
    """Raised when no partition can be produced for the requested configuration."""
    def __init__(self, message: str, *, reason: str, pre_filter_count: int = 0, details: dict = None):
        self.reason = reason
        self.pre_filter_count = pre_filter_count
        payload = {"reason": reason, "pre_filter_count": pre_filter_count}
        payload.update(details or {})
        super().__init__(message, status_code=422, details=payload)

class ScanLimitError(AppError):
    """Raised when the enumeration search budget runs out before any valid partition is found."""
    def __init__(self, message: str, *, scan_limit: int | None, examined: int):
        self.scan_limit = scan_limit
        self.examined = examined
        super().__init__(
            message,
            status_code=422,
            details={"reason": "scan_limit", "scan_limit": scan_limit, "scanned": examined},
        )

class GenerationCancelledError(AppError):
    """Raised when a running generation is superseded by an input change."""
    def __init__(self, message: str = "Generation cancelled because its inputs changed"):
        super().__init__(message, status_code=409)

class ItemError(AppError):
    """Raised when an item cannot be added to or removed from a session."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class SessionNotFoundError(AppError):
    """Raised when a grouping session id is unknown."""
    def __init__(self, session_id: str):
        super().__init__(f"Session with id {session_id} not found", status_code=404)
