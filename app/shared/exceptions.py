"""HTTP exceptions raised by routers and dependencies."""

from fastapi import HTTPException, status


class CredentialsException(HTTPException):
    """Exception for invalid credentials."""
    
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundException(HTTPException):
    """Exception for resource not found."""
    
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class BadRequestException(HTTPException):
    """Exception for bad request."""
    
    def __init__(self, detail: str = "Bad request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class PaymentRequiredException(HTTPException):
    """Exception for an exhausted or missing subscription quota."""
    
    def __init__(self, detail: str = "Subscription required"):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=detail,
        )


class UnprocessableException(HTTPException):
    """Exception for files that cannot be read."""
    
    def __init__(self, detail: str = "Could not read file"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )
