class HomeworkError(Exception):
    """Base error for the homework engine. Carries the HTTP status the API renders."""

    status_code = 500

    def __init__(self, message=''):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(HomeworkError):
    status_code = 400


class NotFoundError(HomeworkError):
    status_code = 404


class ConflictError(HomeworkError):
    status_code = 409


class InvalidTransitionError(HomeworkError):
    status_code = 409


class DispatchError(HomeworkError):
    """Raised by a dispatcher when a notification could not be delivered."""

    status_code = 502
