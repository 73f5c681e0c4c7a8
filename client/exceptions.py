class ClientNotInitialized(Exception):
    """Raised when a client service is accessed before initialize()."""


class AdapterNotConfigured(Exception):
    """Raised when a blockchain call is made before configure() selected an adapter."""
