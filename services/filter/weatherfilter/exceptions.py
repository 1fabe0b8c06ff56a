"""Exceptions raised by the filter service."""


class WeatherFilterError(Exception):
    """Base class for all filter service errors."""


class MissingInputError(WeatherFilterError):
    """No input dataset given, or the dataset does not exist."""


class PrerequisiteMissingError(WeatherFilterError):
    """The cleaning collaborator is not available."""


class PrerequisiteFailedError(WeatherFilterError):
    """The cleaning collaborator ran but did not produce bare data."""


class LogInitError(WeatherFilterError):
    """The run log file could not be created."""


class ConfigurationError(WeatherFilterError):
    """Filter configuration is invalid."""
