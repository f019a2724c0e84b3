import collections

MIN_DURATION = 'MIN_DURATION'
NO_ROOM = 'NO_ROOM'
LOCKED_BOUNDARY = 'LOCKED_BOUNDARY'

REJECTION_CODES = (MIN_DURATION, NO_ROOM, LOCKED_BOUNDARY)

Rejection = collections.namedtuple('Rejection', ['code', 'message'])


class GestureRejected(ValueError):
    """Raised when a move or resize cannot start or cannot be placed."""

    def __init__(self, code, message):
        super().__init__(message)
        self.reason = Rejection(code, message)

    @property
    def code(self):
        return self.reason.code
