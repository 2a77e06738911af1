"""WS-Security signed SOAP payloads for the Cygnum forms gateway."""
from .config import GatewayConfig
from .credentials import KeyMaterial, load_key_material
from .errors import (
    ConfigurationError,
    CredentialError,
    EnvelopeConstructionError,
    GatewayError,
    GatewayTransportError,
    PayloadParseError,
    SignatureError,
)
from .service import SigningResult, SoapMessageService
from .soap.constants import ServiceVariant
from .transport import SoapPoster, SoapResponse
from importlib.metadata import version as _v, PackageNotFoundError
try:
    __version__ = _v("cygnum-gateway")
except PackageNotFoundError:
    __version__ = "0.0.0+editable"

__all__ = [
    "GatewayConfig",
    "KeyMaterial",
    "load_key_material",
    "ServiceVariant",
    "SigningResult",
    "SoapMessageService",
    "SoapPoster",
    "SoapResponse",
    # errors
    "GatewayError",
    "ConfigurationError",
    "CredentialError",
    "EnvelopeConstructionError",
    "GatewayTransportError",
    "PayloadParseError",
    "SignatureError",
]
