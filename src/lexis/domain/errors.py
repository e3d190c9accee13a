"""Exception hierarchy for lexis."""


class LexisError(Exception):
    """Base class for all lexis errors."""


class SessionError(LexisError):
    """Raised for misuse of a review session."""


class InvalidTransitionError(SessionError):
    """An input event arrived in a state that does not accept it."""

    def __init__(self, event: str, state: str):
        super().__init__(f"Cannot handle '{event}' while session is {state}")
        self.event = event
        self.state = state


class SessionBusyError(SessionError):
    """Another transition of the same session is still running."""


class StoreError(LexisError):
    """A key-value backend could not be read or written."""
