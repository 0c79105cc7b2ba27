"""Exceptions raised by hostop."""


class HostopError(Exception):
    """Base class for hostop errors."""


class SourceUnavailableError(HostopError):
    """A raw metric query failed as a whole and produced no snapshot."""

    def __init__(self, family: str, cause: BaseException | None = None) -> None:
        self.family = family
        self.cause = cause
        message = f"{family} snapshot unavailable"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
