"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Validation (order intent, tick size)
  2xxx: Eligibility
  3xxx: Signing
  4xxx: Exchange / lifecycle
  9xxx: System

Validation and eligibility problems are normally returned as values by the
engine; the exception types exist so the HTTP layer can report them.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Validation ---

class IntentValidationError(AppError):
    def __init__(self, issues: list[str]) -> None:
        self.issues = issues
        super().__init__(1001, f"Invalid order: {'; '.join(issues)}", 422)


class InvalidTickSizeError(AppError):
    def __init__(self, tick_size: object) -> None:
        super().__init__(1002, f"Tick size must be in (0, 1), got {tick_size}", 422)


# --- 2xxx: Eligibility ---

class EligibilityBlockedError(AppError):
    def __init__(self, reasons: list[str]) -> None:
        self.reasons = reasons
        super().__init__(2001, f"Order blocked: {', '.join(reasons)}", 422)


# --- 3xxx: Signing ---

class SigningFailedError(AppError):
    def __init__(self, detail: str = "Failed to sign order", code: int = 3001) -> None:
        super().__init__(code, detail, 400)


class UserRejectedError(SigningFailedError):
    def __init__(self, detail: str = "Signature request rejected by user") -> None:
        super().__init__(detail, 3002)


class ProviderUnavailableError(SigningFailedError):
    def __init__(self, detail: str = "No wallet provider available") -> None:
        super().__init__(detail, 3003)


# --- 4xxx: Exchange / lifecycle ---

class SubmissionRejectedError(AppError):
    def __init__(self, detail: str, code: int = 4001) -> None:
        super().__init__(code, detail, 422)


class RejectedByExchangeError(SubmissionRejectedError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Order rejected by exchange: {reason}", 4002)


class ConfirmationTimeoutError(AppError):
    def __init__(self, order_id: str, attempts: int) -> None:
        super().__init__(
            4003,
            f"Order {order_id} status unknown after {attempts} polls; treat as pending",
            504,
        )


class NetworkFailureError(AppError):
    """Transient; the same attempt is safe to retry."""

    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Network failure: {detail}", 503)


class LifecycleBusyError(AppError):
    def __init__(self) -> None:
        super().__init__(4005, "Another order submission is already in flight", 409)


class PreparedOrderMismatchError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4006, f"Signed payload does not match prepared order: {detail}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
