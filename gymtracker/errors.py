class GymTrackerError(Exception):
    """Base class for domain errors raised by the service layer."""


class NotFoundError(GymTrackerError, LookupError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class InvalidWorkoutError(GymTrackerError, ValueError):
    pass


class AuthError(GymTrackerError):
    pass
