"""Engine error taxonomy.

- NotFound: referenced id or code is absent. Recoverable; callers treat it
  as "no classification" or "no price".
- InvalidArgument: the caller supplied no usable key. Raised before any
  store call.
- IntegrityViolation: a static table or imported hierarchy is inconsistent.
  Fatal at startup.
- ValidationFailure: a computed correction failed its checks. The row is
  skipped and reported; the pipeline continues.
"""


class EngineError(Exception):
    """Base class for all engine errors."""

    pass


class NotFound(EngineError):
    """Raised when an id or code does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class InvalidArgument(EngineError):
    """Raised when a call has no usable arguments."""

    pass


class IntegrityViolation(EngineError):
    """Raised when configuration or hierarchy data is inconsistent."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = problems or []
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)


class ValidationFailure(EngineError):
    """Raised when a computed row change fails its invariant checks."""

    def __init__(self, row_id: str, reasons: list[str]) -> None:
        self.row_id = row_id
        self.reasons = reasons
        super().__init__(f"Validation failed for {row_id}: {'; '.join(reasons)}")
