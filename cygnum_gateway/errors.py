from typing import Optional


class GatewayError(RuntimeError):
    """Base class for any failure while building or posting a gateway payload."""

    def __init__(self, msg: str, *, cause: Optional[str] = None):
        super().__init__(msg if not cause else f"{msg}: {cause}")
        self.cause = cause


class ConfigurationError(GatewayError):
    """Missing or invalid configuration values."""
    pass


class PayloadParseError(GatewayError):
    """Malformed input XML or a missing payload file."""
    pass


class CredentialError(GatewayError):
    """Key store could not be decoded, opened or resolved to a key entry."""
    pass


class EnvelopeConstructionError(GatewayError):
    """Unexpected structural failure while composing SOAP/WSS elements."""
    pass


class SignatureError(GatewayError):
    """Cryptographic or DOM failure while signing."""
    pass


class GatewayTransportError(GatewayError):
    """Network, timeout, or SSL errors while posting to the gateway."""
    pass
