import logging
from dataclasses import dataclass
from typing import Optional

from lxml import etree

from .config import GatewayConfig
from .credentials import KeyMaterial, load_key_material
from .errors import GatewayError, PayloadParseError
from .soap.constants import ServiceVariant
from .soap.envelope import Payload, build_envelope, get_body, parse_payload, read_payload_file
from .soap.headers import CorrelationIds, Timestamp, compose_headers
from .soap.serializer import serialize_envelope, serialize_envelope_str
from .soap.signature import sign_envelope, signature_algorithm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningResult:
    """Either a signed payload or the error that stopped the pipeline. Never both."""

    payload: Optional[str] = None
    error: Optional[GatewayError] = None

    def __post_init__(self):
        if (self.payload is None) == (self.error is None):
            raise ValueError("SigningResult needs exactly one of payload or error")

    @classmethod
    def success(cls, payload: str) -> "SigningResult":
        return cls(payload=payload)

    @classmethod
    def failure(cls, error: GatewayError) -> "SigningResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error
        return self.payload


class SoapMessageService:
    """Builds signed SOAP 1.2 payloads for the two gateway operations.

    Configuration is the only state held; every call creates its own
    correlation ids, timestamp and key material, so one instance can be
    shared between threads.
    """

    def __init__(self, cfg: GatewayConfig):
        self.cfg = cfg
        # Resolve early so a bad hash setting fails at construction.
        self._algorithm = signature_algorithm(cfg.signature_hash)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_form_submission_payload(self, payload: Payload) -> SigningResult:
        """SendData: wrap and sign a caller supplied XML payload."""
        return self.build(ServiceVariant.SUBMIT_DATA, payload)

    def build_get_urn_payload(self) -> SigningResult:
        """GetData: wrap and sign the configured reference request file."""
        return self.build(ServiceVariant.FETCH_REFERENCE)

    def build(self, variant: ServiceVariant, payload: Optional[Payload] = None) -> SigningResult:
        try:
            envelope = self.sign(variant, payload)
        except GatewayError as exc:
            logger.warning("Signed %s payload not built: %s: %s", variant.name, type(exc).__name__, exc)
            return SigningResult.failure(exc)
        return SigningResult.success(serialize_envelope_str(envelope))

    def sign(self, variant: ServiceVariant, payload: Optional[Payload] = None) -> etree._Element:
        """Run the pipeline and return the signed envelope element; raises ``GatewayError``."""
        key_material = load_key_material(self.cfg)
        logger.debug("Loaded key material for alias %s", self.cfg.private_key_alias)

        document = self._load_payload(variant, payload)
        envelope = build_envelope(document)
        logger.debug("Built SOAP envelope for %s", variant.name)

        ids = CorrelationIds.generate()
        envelope = self._sign_envelope(envelope, variant, ids, key_material)
        # Round trip so lxml lookups see the nodes xmlsec inserted
        envelope = etree.fromstring(serialize_envelope(envelope))
        logger.info("Signed %s payload, MessageID %s", variant.name, ids.message_id)
        return envelope

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_payload(self, variant: ServiceVariant, payload: Optional[Payload]) -> etree._Element:
        if variant is ServiceVariant.FETCH_REFERENCE and payload is None:
            return read_payload_file(self.cfg.fetch_reference_payload_path)
        if payload is None:
            raise PayloadParseError(f"{variant.name} requires an XML payload")
        return parse_payload(payload)

    def _sign_envelope(
        self,
        envelope: etree._Element,
        variant: ServiceVariant,
        ids: CorrelationIds,
        key_material: KeyMaterial,
    ) -> etree._Element:
        headers = compose_headers(
            envelope,
            variant,
            ids=ids,
            timestamp=Timestamp.starting_at(),
            username=self.cfg.username,
            password=self.cfg.password,
            url=self.cfg.url,
            certificate_b64=key_material.certificate_b64(),
            to_carries_body_id=self.cfg.to_carries_body_id,
        )
        logger.debug("Composed security header for %s", variant.name)
        sign_envelope(
            envelope,
            security=headers.security,
            timestamp=headers.timestamp,
            body=get_body(envelope),
            bst_id=ids.binary_security_token_id,
            private_key_pem=key_material.private_key_pem(),
            algorithm=self._algorithm,
        )
        return envelope
