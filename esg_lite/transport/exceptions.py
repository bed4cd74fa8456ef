class TransportAnalysisError(Exception):
    """Raised when the language model answer cannot be used."""


class TransportAnalysisNetworkError(TransportAnalysisError):
    """Raised when the language model call fails due to network/infrastructure issues."""
