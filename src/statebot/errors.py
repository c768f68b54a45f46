"""Exception types raised by StateBot."""


class StateBotError(Exception):
    """Base class for StateBot errors."""


class ConfigurationError(StateBotError, ValueError):
    """Invalid configuration, raised when a bot is constructed."""


class LLMServiceError(StateBotError):
    """A backend call failed (network error or non-success response).

    Attributes:
        provider: Identifier of the provider that failed.
        status_code: HTTP status code, if the backend answered.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class LLMResponseParseError(LLMServiceError):
    """The backend answered but no usable JSON could be extracted."""


class UnknownStateError(StateBotError):
    """The backend picked a state name that is not configured."""

    def __init__(self, state: str, known: list[str]) -> None:
        super().__init__(
            f"Backend returned unknown state '{state}' "
            f"(expected one of: {', '.join(known)})"
        )
        self.state = state
        self.known = known
