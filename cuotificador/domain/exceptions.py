"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmount(DomainException):
    """Amount to finance is zero or negative"""

    pass


class InvalidInstallmentCount(DomainException):
    """Installment count is not a positive integer"""

    pass


class InvalidRate(DomainException):
    """Rate or fixed surcharge is negative or not a finite number"""

    pass


class NotConfigured(DomainException):
    """No applicable rate exists and no fallback is allowed"""

    pass


class DuplicateConflict(DomainException):
    """Entity collides with an existing one on a unique key"""

    pass


class NotFound(DomainException):
    """Referenced entity does not exist"""

    pass


class Unauthorized(DomainException):
    """Permission policy denied the capability"""

    def __init__(self, capability: str):
        super().__init__(f"Missing capability: {capability}")
        self.capability = capability


class ExternalProviderError(DomainException):
    """Provider API failed or returned an error payload"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or "PROVIDER_ERROR"
        self.message = message


class PartialImportFailure(DomainException):
    """Bulk import finished with rejected rows"""

    def __init__(self, summary):
        super().__init__(
            f"Import finished with {summary.error_count} errors "
            f"({summary.imported_count} rows imported)"
        )
        self.summary = summary
