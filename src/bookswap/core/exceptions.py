"""Custom exception hierarchy for BookSwap.

Services raise these; the HTTP layer maps them to status codes through
``status_code`` and renders ``to_dict()`` as the response body.

Usage:
    from bookswap.core.exceptions import ExchangeNotPendingError

    raise ExchangeNotPendingError(exchange_id=12, status="accepted")
"""

from typing import Any


class BookSwapError(Exception):
    """Base exception for all BookSwap errors.

    Attributes:
        code: Machine-readable error code (e.g., "BOOK_NOT_FOUND")
        message: Human-readable error message
        status_code: HTTP status code to return
        details: Additional error details (optional)
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Override default message
            code: Override default error code
            details: Additional error details
        """
        if message:
            self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Convert exception to API error response format.

        Args:
            request_id: Request correlation ID

        Returns:
            Error response dictionary
        """
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if request_id:
            error["request_id"] = request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(BookSwapError):
    """Base class for resource not found errors."""

    code: str = "NOT_FOUND"
    message: str = "Resource not found"
    status_code: int = 404

    #: Name of the identifier placed in ``details``
    id_field: str = "id"
    entity: str = "Resource"

    def __init__(self, entity_id: int | None = None, message: str | None = None) -> None:
        details: dict[str, Any] = {}
        if entity_id is not None:
            details[self.id_field] = entity_id
            if not message:
                message = f"{self.entity} with ID {entity_id} not found"
        super().__init__(message=message, details=details if details else None)


class BookNotFoundError(NotFoundError):
    """Raised when a book cannot be found or was deleted."""

    code: str = "BOOK_NOT_FOUND"
    message: str = "Book not found"
    id_field = "book_id"
    entity = "Book"


class UserNotFoundError(NotFoundError):
    """Raised when a user cannot be found or was deleted."""

    code: str = "USER_NOT_FOUND"
    message: str = "User not found"
    id_field = "user_id"
    entity = "User"


class ExchangeNotFoundError(NotFoundError):
    """Raised when an exchange cannot be found."""

    code: str = "EXCHANGE_NOT_FOUND"
    message: str = "Exchange not found"
    id_field = "exchange_id"
    entity = "Exchange"


class ReviewNotFoundError(NotFoundError):
    """Raised when a review cannot be found."""

    code: str = "REVIEW_NOT_FOUND"
    message: str = "Review not found"
    id_field = "review_id"
    entity = "Review"


class GenreNotFoundError(NotFoundError):
    """Raised when a genre cannot be found."""

    code: str = "GENRE_NOT_FOUND"
    message: str = "Genre not found"
    id_field = "genre_id"
    entity = "Genre"


# =============================================================================
# Authentication & Authorization Errors (401, 403)
# =============================================================================


class AuthenticationError(BookSwapError):
    """Raised when authentication fails."""

    code: str = "AUTHENTICATION_FAILED"
    message: str = "Authentication failed"
    status_code: int = 401


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid."""

    code: str = "INVALID_CREDENTIALS"
    message: str = "Invalid email or password"


class InvalidTokenError(AuthenticationError):
    """Raised when the bearer token is missing, invalid or expired."""

    code: str = "INVALID_TOKEN"
    message: str = "Invalid or expired token"


class AuthorizationError(BookSwapError):
    """Raised when the caller does not own the resource it acts on."""

    code: str = "AUTHORIZATION_FAILED"
    message: str = "You do not have permission to perform this action"
    status_code: int = 403


class BookForbiddenError(AuthorizationError):
    """Raised when someone other than the owner edits or deletes a book."""

    code: str = "BOOK_FORBIDDEN"
    message: str = "Only the owner can modify this book"


class ReviewForbiddenError(AuthorizationError):
    """Raised when someone other than the author deletes a review."""

    code: str = "REVIEW_FORBIDDEN"
    message: str = "Only the author can delete this review"


class ExchangeForbiddenError(AuthorizationError):
    """Raised when the acting user is not allowed to move an exchange."""

    code: str = "EXCHANGE_FORBIDDEN"
    message: str = "You are not a party allowed to perform this transition"


class InitiatorNotOwnerError(AuthorizationError):
    """Raised when the initiator does not own the offered book."""

    code: str = "INITIATOR_NOT_OWNER"
    message: str = "Initiator does not own the book"


class RecipientNotOwnerError(AuthorizationError):
    """Raised when the recipient does not own the requested book."""

    code: str = "RECIPIENT_NOT_OWNER"
    message: str = "Recipient does not own the book"


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(BookSwapError):
    """Raised when input validation fails."""

    code: str = "VALIDATION_ERROR"
    message: str = "Validation error"
    status_code: int = 400

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with optional field information."""
        if details is None:
            details = {}
        if field:
            details["field"] = field
        super().__init__(message=message, details=details if details else None)


class ExchangeInvalidIDError(ValidationError):
    """Raised when an exchange ID is zero or negative."""

    code: str = "EXCHANGE_INVALID_ID"
    message: str = "Exchange ID must be a positive integer"

    def __init__(self, exchange_id: int | None = None) -> None:
        super().__init__(field="exchange_id", details={"exchange_id": exchange_id})


class SelfExchangeError(ValidationError):
    """Raised when both books of an exchange belong to the same user."""

    code: str = "SELF_EXCHANGE"
    message: str = "Initiator and recipient book cannot belong to the same user"


class SelfReviewError(ValidationError):
    """Raised when a user reviews themselves."""

    code: str = "SELF_REVIEW"
    message: str = "Cannot leave a review for yourself"

    def __init__(self) -> None:
        super().__init__(field="target_user_id")


class ReviewTextLengthError(ValidationError):
    """Raised when review text is outside the allowed length."""

    code: str = "REVIEW_TEXT_LENGTH"
    message: str = "Review text must be between 10 and 150 characters"

    def __init__(self, length: int) -> None:
        super().__init__(field="text", details={"length": length})


class ReviewRatingError(ValidationError):
    """Raised when a review rating is outside 1..5."""

    code: str = "REVIEW_RATING"
    message: str = "Rating must be between 1 and 5"

    def __init__(self, rating: int) -> None:
        super().__init__(field="rating", details={"rating": rating})


class DuplicateEmailError(ValidationError):
    """Raised when email is already registered."""

    code: str = "DUPLICATE_EMAIL"
    message: str = "Email is already registered"


class DuplicateGenreError(ValidationError):
    """Raised when a genre name is already taken."""

    code: str = "DUPLICATE_GENRE"
    message: str = "Genre already exists"


# =============================================================================
# Invalid State Errors (400)
# =============================================================================


class InvalidStateError(BookSwapError):
    """Base class for operations refused because of an entity's state."""

    code: str = "INVALID_STATE"
    message: str = "Operation not allowed in the current state"
    status_code: int = 400


class ExchangeNotPendingError(InvalidStateError):
    """Raised when accepting or cancelling an exchange that is not pending."""

    code: str = "EXCHANGE_NOT_PENDING"
    message: str = "Exchange is not pending"

    def __init__(self, exchange_id: int | None = None, status: str | None = None) -> None:
        details: dict[str, Any] = {}
        if exchange_id is not None:
            details["exchange_id"] = exchange_id
        if status:
            details["status"] = status
        super().__init__(details=details if details else None)


class ExchangeNotAcceptedError(InvalidStateError):
    """Raised when completing an exchange that is not accepted."""

    code: str = "EXCHANGE_NOT_ACCEPTED"
    message: str = "Exchange is not accepted"

    def __init__(self, exchange_id: int | None = None, status: str | None = None) -> None:
        details: dict[str, Any] = {}
        if exchange_id is not None:
            details["exchange_id"] = exchange_id
        if status:
            details["status"] = status
        super().__init__(details=details if details else None)


class BookUnavailableError(InvalidStateError):
    """Raised when the initiator's book is not available for exchange."""

    code: str = "BOOK_UNAVAILABLE"
    message: str = "Initiator book is unavailable"

    def __init__(self, book_id: int | None = None) -> None:
        super().__init__(details={"book_id": book_id} if book_id is not None else None)


class RecipientBookUnavailableError(BookUnavailableError):
    """Raised when the recipient's book is not available for exchange."""

    code: str = "RECIPIENT_BOOK_UNAVAILABLE"
    message: str = "Recipient book is unavailable"


class BookInExchangeError(InvalidStateError):
    """Raised when deleting or re-flagging a book that is part of an exchange."""

    code: str = "BOOK_IN_EXCHANGE"
    message: str = "Book is part of an active exchange"

    def __init__(self, book_id: int | None = None, status: str | None = None) -> None:
        details: dict[str, Any] = {}
        if book_id is not None:
            details["book_id"] = book_id
        if status:
            details["status"] = status
        super().__init__(details=details if details else None)


# =============================================================================
# External Service Errors (500)
# =============================================================================


class ExternalServiceError(BookSwapError):
    """Base class for upstream service errors."""

    code: str = "EXTERNAL_SERVICE_ERROR"
    message: str = "External service error"
    status_code: int = 500


class SummaryGenerationError(ExternalServiceError):
    """Raised when the summary generator fails or returns nothing usable."""

    code: str = "AI_SUMMARY_FAILED"
    message: str = "Failed to generate book summary"
