"""
Exception hierarchy for the triage pipeline.
"""


class TriageError(Exception):
    """Base class for triage pipeline errors."""


class ConfigurationError(TriageError):
    """Classifier not registered or required connection settings missing.

    Fatal for the cycle: nothing is fetched.
    """


class ConnectorError(TriageError):
    """Transport or protocol failure while fetching mail."""


class AuthenticationError(ConnectorError):
    """The mail source rejected our credentials (401/403 or token failure)."""


class ClassificationError(TriageError):
    """The AI classifier failed.

    Adapters catch this internally and return a degraded result instead.
    """


class PersistenceError(TriageError):
    """A triage store read or write failed."""


class CycleInProgressError(TriageError):
    """A triage cycle was requested while another one is still running."""
