"""Custom exceptions for the POS back office."""

class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['error'] = self.message
        rv['status'] = 'error'
        return rv

class ValidationError(PosError):
    """Malformed or missing input. Raised before any persistence is attempted."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)

class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class InsufficientStockError(PosError):
    """Raised when a sale asks for more units than the item has on hand."""
    def __init__(self, item_name, requested, available):
        self.item_name = item_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_name}",
            400,
            {'available': available, 'requested': requested, 'itemName': item_name}
        )

class ConflictError(PosError):
    """Uniqueness or reference violation reported by the database."""
    def __init__(self, message="Record already exists", payload=None):
        super().__init__(message, 400, payload)

class PersistenceError(PosError):
    """Any other store failure. The surrounding transaction is always rolled back."""
    def __init__(self, message="Database error", payload=None):
        super().__init__(message, 500, payload)

class NotificationError(PosError):
    """Receipt dispatch failed. Reported as a warning, never rolls back a sale."""
    def __init__(self, message="Notification failed", payload=None):
        super().__init__(message, 502, payload)
