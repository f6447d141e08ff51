class ServiceError(Exception):
    """Base class for every error raised by the delivery domain and its API client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class JobValidationError(ServiceError):
    pass


class TransitionError(ServiceError):
    pass


class PaymentError(ServiceError):
    pass
