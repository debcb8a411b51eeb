class StockPilotError(RuntimeError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StockPilotError):
    """Input rejected; the operation was aborted without touching state."""


class ConflictError(ValidationError):
    status_code = 409


class NotFoundError(StockPilotError):
    status_code = 404
