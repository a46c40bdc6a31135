# app/core/errors.py


class PlannerError(Exception):
    """
    Base class for every error that ends up as the user-visible message
    of a planner session.
    """

    @property
    def message(self) -> str:
        return str(self)


class InputValidationError(PlannerError):
    """Required user input is missing; raised before any network call."""


class BackendHTTPError(PlannerError):
    """A backend (or geocoder) call answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str, prefix: str = "Request failed") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"{prefix} ({status_code}): {body}")


class BackendDecodeError(PlannerError):
    """A 2xx response whose body is not the expected JSON object."""

    def __init__(self, excerpt: str) -> None:
        self.excerpt = excerpt
        super().__init__(f"Invalid JSON response: {excerpt}")


class BackendUnavailableError(PlannerError):
    """The call never produced a response (connection refused, timeout, ...)."""
