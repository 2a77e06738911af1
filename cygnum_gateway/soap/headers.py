"""WS-Addressing headers and the WS-Security header skeleton.

Element order inside ``s:Header`` and ``o:Security`` is fixed: the gateway
computes its exclusive C14N digests over exactly this layout.
"""
import datetime as _dt
import uuid
from dataclasses import dataclass
from datetime import timezone

from lxml import etree
from lxml.etree import QName

from ..errors import EnvelopeConstructionError
from .constants import (
    ANONYMOUS_ADDRESS,
    BASE64_ENCODING_TYPE,
    BODY_ID,
    PASSWORD_TEXT_TYPE,
    SOAP_ENV,
    TIMESTAMP_ID,
    TIMESTAMP_TTL_SECONDS,
    WSA,
    WSSE,
    WSSE_PREFIX,
    WSU,
    X509V3_TOKEN_TYPE,
    ServiceVariant,
)
from .envelope import get_header


@dataclass(frozen=True)
class CorrelationIds:
    """Identifiers generated once per invocation and shared by the tokens that reference each other."""

    base: str
    message_id: str

    @classmethod
    def generate(cls) -> "CorrelationIds":
        return cls(base=str(uuid.uuid4()), message_id=f"urn:uuid:{uuid.uuid4()}")

    @property
    def id1(self) -> str:
        return f"{self.base}-1"

    @property
    def id2(self) -> str:
        return f"{self.base}-2"

    @property
    def username_token_id(self) -> str:
        return f"uuid-{self.id1}"

    @property
    def binary_security_token_id(self) -> str:
        return f"uuid-{self.id2}"


def format_instant(value: _dt.datetime) -> str:
    """Render as ``yyyy-MM-ddTHH:mm:ss.SSSZ`` in UTC."""
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Timestamp:
    created: _dt.datetime
    expires: _dt.datetime
    id: str = TIMESTAMP_ID

    @classmethod
    def starting_at(cls, now: _dt.datetime | None = None) -> "Timestamp":
        now = now or _dt.datetime.now(timezone.utc)
        # Truncate to the rendered precision so expires - created stays exact.
        created = now.astimezone(timezone.utc).replace(microsecond=(now.microsecond // 1000) * 1000)
        return cls(created=created, expires=created + _dt.timedelta(seconds=TIMESTAMP_TTL_SECONDS))


@dataclass(frozen=True)
class SecurityHeader:
    """Handles to the header elements the signature step needs."""

    security: etree._Element
    timestamp: etree._Element
    username_token: etree._Element
    binary_security_token: etree._Element


def _must_understand(element: etree._Element) -> etree._Element:
    element.set(QName(SOAP_ENV, "mustUnderstand"), "1")
    return element


def add_action(header: etree._Element, variant: ServiceVariant) -> etree._Element:
    action = _must_understand(etree.SubElement(header, QName(WSA, "Action")))
    action.text = variant.action
    return action


def add_message_id(header: etree._Element, ids: CorrelationIds) -> etree._Element:
    message_id = etree.SubElement(header, QName(WSA, "MessageID"))
    message_id.text = ids.message_id
    return message_id


def add_reply_to(header: etree._Element) -> etree._Element:
    reply_to = etree.SubElement(header, QName(WSA, "ReplyTo"))
    etree.SubElement(reply_to, QName(WSA, "Address")).text = ANONYMOUS_ADDRESS
    return reply_to


def add_to(header: etree._Element, url: str, *, carries_body_id: bool = False) -> etree._Element:
    to = _must_understand(etree.SubElement(header, QName(WSA, "To")))
    if carries_body_id:
        to.set(QName(WSU, "Id"), BODY_ID)
    to.text = url
    return to


def add_security(header: etree._Element) -> etree._Element:
    security = etree.SubElement(header, QName(WSSE, "Security"), nsmap={WSSE_PREFIX: WSSE})
    return _must_understand(security)


def add_timestamp(security: etree._Element, timestamp: Timestamp) -> etree._Element:
    element = etree.SubElement(security, QName(WSU, "Timestamp"))
    element.set(QName(WSU, "Id"), timestamp.id)
    etree.SubElement(element, QName(WSU, "Created")).text = format_instant(timestamp.created)
    etree.SubElement(element, QName(WSU, "Expires")).text = format_instant(timestamp.expires)
    return element


def add_username_token(
    security: etree._Element, ids: CorrelationIds, username: str, password: str
) -> etree._Element:
    token = etree.SubElement(security, QName(WSSE, "UsernameToken"))
    token.set(QName(WSU, "Id"), ids.username_token_id)
    etree.SubElement(token, QName(WSSE, "Username")).text = username
    password_el = etree.SubElement(token, QName(WSSE, "Password"))
    # Plain-text profile; the legacy gateway expects the type attribute qualified.
    password_el.set(QName(WSSE, "Type"), PASSWORD_TEXT_TYPE)
    password_el.text = password
    return token


def add_binary_security_token(
    security: etree._Element, ids: CorrelationIds, certificate_b64: str
) -> etree._Element:
    bst = etree.SubElement(
        security,
        QName(WSSE, "BinarySecurityToken"),
        {
            QName(WSU, "Id"): ids.binary_security_token_id,
            "ValueType": X509V3_TOKEN_TYPE,
            "EncodingType": BASE64_ENCODING_TYPE,
        },
    )
    bst.text = certificate_b64
    return bst


def compose_headers(
    envelope: etree._Element,
    variant: ServiceVariant,
    *,
    ids: CorrelationIds,
    timestamp: Timestamp,
    username: str,
    password: str,
    url: str,
    certificate_b64: str,
    to_carries_body_id: bool = False,
) -> SecurityHeader:
    """Append addressing headers and the Security skeleton to ``envelope`` in gateway order."""
    header = get_header(envelope)
    if len(header):
        raise EnvelopeConstructionError("SOAP header already populated")
    try:
        add_action(header, variant)
        add_message_id(header, ids)
        add_reply_to(header)
        add_to(header, url, carries_body_id=to_carries_body_id)
        security = add_security(header)
        return SecurityHeader(
            security=security,
            timestamp=add_timestamp(security, timestamp),
            username_token=add_username_token(security, ids, username, password),
            binary_security_token=add_binary_security_token(security, ids, certificate_b64),
        )
    except (TypeError, ValueError) as exc:
        # lxml rejects None text and control characters with these
        raise EnvelopeConstructionError("Could not compose security header", cause=str(exc)) from exc
