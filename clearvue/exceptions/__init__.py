"""Custom exceptions for the ClearVue sales core."""


class ClearVueError(Exception):
    """Base exception for all application errors."""

    retryable = False

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['retryable'] = self.retryable
        return rv


class InvalidInputError(ClearVueError):
    """Malformed request data (negative quantity or price, unknown tokens)."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class InvalidTimeframeError(InvalidInputError):
    """Raised when an analytics timeframe token is not recognized."""
    def __init__(self, timeframe):
        self.timeframe = timeframe
        super().__init__(f"Invalid timeframe: {timeframe!r}", payload={'timeframe': timeframe})


class NotFoundError(ClearVueError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found", payload={'product_id': product_id})


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_id):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} not found", payload={'customer_id': customer_id})


class InsufficientStockError(ClearVueError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, required, available):
        self.product_name = product_name
        self.required = int(required)
        self.available = int(available)
        message = (
            f"Insufficient stock for {product_name}: "
            f"requested {self.required}, available {self.available}"
        )
        super().__init__(message, status_code=409, payload={
            'product': product_name,
            'requested': self.required,
            'available': self.available,
        })


class ConflictError(ClearVueError):
    """A concurrent write invalidated the operation (stock race, duplicate submit)."""
    def __init__(self, message="Concurrent modification detected", payload=None):
        super().__init__(message, 409, payload)


class StorageUnavailableError(ClearVueError):
    """The record store failed or timed out; the operation left no partial effect."""

    retryable = True

    def __init__(self, message="Storage temporarily unavailable, please retry", payload=None):
        super().__init__(message, 503, payload)


class StockConflictError(ConflictError):
    """Stock moved between validation and deduction; the sale can be retried."""

    retryable = True
