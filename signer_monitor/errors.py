"""Exception types raised across the signer monitor."""


class SignerMonitorError(Exception):
    """Base class for all signer monitor errors."""


class ConfigError(SignerMonitorError):
    """Required configuration is missing or invalid."""


class FetchError(SignerMonitorError):
    """An external endpoint could not be queried or returned an unusable response."""


class ParseError(FetchError):
    """A numeric field from an external endpoint is malformed."""


class NotFoundError(SignerMonitorError):
    """The signer is not registered in the requested cycle."""


class DispatchError(SignerMonitorError):
    """An alert could not be delivered to the webhook."""
