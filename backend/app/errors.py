"""Scanner exceptions."""


class ScannerError(Exception):
    """Base class for scanner errors."""


class AdapterConfigError(ScannerError):
    """An adapter is missing required configuration (e.g. credentials).

    Fatal for that adapter only; other adapters keep running.
    """


class AdapterAuthError(ScannerError):
    """The vendor rejected our credentials. Retrying will not help."""
