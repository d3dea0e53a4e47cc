from jackpot_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}

class ValidationException(AppException):
    def __init__(self, status_message="Validation failed", details=None, error_code=ErrorCodes.VALIDATION_ERROR):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=422,
            details=details
        )

class InvalidBetException(ValidationException):
    def __init__(self, status_message="Invalid bet amount", details=None):
        super().__init__(
            status_message=status_message,
            details=details,
            error_code=ErrorCodes.INVALID_BET
        )

class NotFoundException(AppException):
    def __init__(self, status_message="Resource not found", details=None, error_code=ErrorCodes.NOT_FOUND):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=404,
            details=details
        )

class SessionNotFoundException(NotFoundException):
    def __init__(self, session_id, status_message=None):
        super().__init__(
            status_message=status_message or f"Session with ID {session_id} not found",
            details={'session_id': session_id},
            error_code=ErrorCodes.SESSION_NOT_FOUND
        )
        self.session_id = session_id

class InsufficientFundsException(AppException):
    def __init__(self, status_message="Insufficient funds", details=None):
        super().__init__(
            error_code=ErrorCodes.INSUFFICIENT_FUNDS,
            status_message=status_message,
            status_code=400,
            details=details
        )

class SessionClosedException(AppException):
    def __init__(self, session_id, status_message=None):
        super().__init__(
            error_code=ErrorCodes.SESSION_CLOSED,
            status_message=status_message or f"Session with ID {session_id} is already closed",
            status_code=409,
            details={'session_id': session_id}
        )
        self.session_id = session_id

class StoreFailureException(AppException):
    """Raised when the session store cannot complete a read or write.

    Carries the session id and the store operation so callers can log them;
    the underlying driver error is chained as ``__cause__``.
    """
    def __init__(self, operation, session_id=None, status_message="Session store unavailable"):
        super().__init__(
            error_code=ErrorCodes.STORE_FAILURE,
            status_message=status_message,
            status_code=500,
            details={'session_id': session_id, 'operation': operation}
        )
        self.operation = operation
        self.session_id = session_id

class InternalServerErrorException(AppException):
    def __init__(self, status_message="Internal server error", details=None):
        super().__init__(
            error_code=ErrorCodes.INTERNAL_SERVER_ERROR,
            status_message=status_message,
            status_code=500,
            details=details
        )
