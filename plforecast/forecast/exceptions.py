"""Forecast input errors.

Every error here is a caller mistake surfaced synchronously; nothing is
transient and nothing is retried.
"""


class ForecastError(ValueError):
    """Base class for invalid forecast inputs."""


class InvalidMonthKeyError(ForecastError):
    """A month key is not a valid YYYY-MM value."""


class InvalidRangeError(ForecastError):
    """A start boundary falls after its end boundary."""


class EmptyForecastWindowError(ForecastError):
    """The layout contains no forecast months."""


class DuplicateLineKeyError(ForecastError):
    """A value is keyed to a line key that several lines share."""
