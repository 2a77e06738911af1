"""SOAP 1.2 envelope construction and WS-Security signing."""
from .constants import ServiceVariant
from .envelope import build_envelope, parse_payload, read_payload_file
from .headers import CorrelationIds, SecurityHeader, Timestamp, compose_headers
from .serializer import serialize_envelope, serialize_envelope_str
from .signature import SignatureAlgorithm, sign_envelope, signature_algorithm

__all__ = [
    "ServiceVariant",
    "build_envelope",
    "parse_payload",
    "read_payload_file",
    "CorrelationIds",
    "SecurityHeader",
    "Timestamp",
    "compose_headers",
    "serialize_envelope",
    "serialize_envelope_str",
    "SignatureAlgorithm",
    "sign_envelope",
    "signature_algorithm",
]
