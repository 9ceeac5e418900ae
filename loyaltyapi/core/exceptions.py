from typing import Optional, Dict, Any


class BaseLoyaltyException(Exception):
    """Base exception for operator-facing loyalty errors"""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.retryable = retryable
        super().__init__(message)

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            },
        }


class ValidationError(BaseLoyaltyException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            error_code="VALIDATION_001",
            message=message,
            details=details
        )


class CustomerBlockedError(BaseLoyaltyException):
    """Blocked customer errors"""
    def __init__(self, message: str = "Customer is blocked", details: Optional[Dict] = None):
        super().__init__(
            error_code="CUSTOMER_BLOCKED",
            message=message,
            details=details
        )


class NotFoundError(BaseLoyaltyException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )


class ConflictError(BaseLoyaltyException):
    """Resource conflict errors"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            error_code="CONFLICT_001",
            message=message,
            details=details
        )


class InsufficientBalanceError(BaseLoyaltyException):
    """Insufficient balance errors"""
    def __init__(self, message: str = "Insufficient balance", details: Optional[Dict] = None):
        super().__init__(
            error_code="BALANCE_001",
            message=message,
            details=details
        )


class BranchFundsError(BaseLoyaltyException):
    """Branch coin allowance cannot cover the grant"""
    def __init__(self, message: str = "Insufficient branch balance", details: Optional[Dict] = None):
        super().__init__(
            error_code="BRANCH_FUNDS_001",
            message=message,
            details=details
        )


class PersistenceError(BaseLoyaltyException):
    """Database / transactional failures (safe to retry)"""
    def __init__(self, message: str = "Could not save, please retry", details: Optional[Dict] = None):
        super().__init__(
            error_code="PERSISTENCE_001",
            message=message,
            details=details,
            retryable=True,
        )
