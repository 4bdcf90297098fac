from __future__ import annotations


class ChartDataError(ValueError):
    """Raised when input rows cannot be turned into data points."""


class SettingsError(ValueError):
    """Raised when a settings mapping holds a value of the wrong kind."""
