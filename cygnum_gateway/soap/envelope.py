import copy
from pathlib import Path
from typing import Union

from lxml import etree
from lxml.etree import QName

from ..errors import EnvelopeConstructionError, PayloadParseError
from .constants import BODY_ID, NSMAP, SOAP_ENV, WSU

Payload = Union[str, bytes, etree._Element, etree._ElementTree]


def _parser(encoding: str | None = None) -> etree.XMLParser:
    # Namespace-aware; never fetch external entities or DTDs.
    return etree.XMLParser(encoding=encoding, resolve_entities=False, no_network=True, huge_tree=False)


def parse_payload(payload: Payload) -> etree._Element:
    """Parse an XML payload into a detached element tree."""
    if isinstance(payload, etree._ElementTree):
        payload = payload.getroot()
    if isinstance(payload, etree._Element):
        element = copy.deepcopy(payload)
        element.tail = None
        return element
    encoding = None
    if isinstance(payload, str):
        # Already decoded text: the declared encoding no longer applies.
        payload = payload.encode("utf-8")
        encoding = "utf-8"
    if not payload or not payload.strip():
        raise PayloadParseError("XML payload is empty")
    try:
        return etree.fromstring(payload, _parser(encoding))
    except etree.XMLSyntaxError as exc:
        raise PayloadParseError("XML payload is malformed", cause=str(exc)) from exc
    except ValueError as exc:
        raise PayloadParseError("XML payload could not be read", cause=str(exc)) from exc


def read_payload_file(path: str | Path | None) -> etree._Element:
    if path is None or not Path(path).is_file():
        raise PayloadParseError("XML payload file does not exist.", cause=str(path) if path else None)
    try:
        return etree.parse(str(path), _parser()).getroot()
    except etree.XMLSyntaxError as exc:
        raise PayloadParseError(f"XML payload file {Path(path).name} is malformed", cause=str(exc)) from exc
    except OSError as exc:
        raise PayloadParseError(f"XML payload file {Path(path).name} could not be read", cause=str(exc)) from exc


def build_envelope(payload: etree._Element) -> etree._Element:
    """Wrap ``payload`` in an ``s:Envelope`` with an empty Header and a Body tagged ``u:Id="_1"``."""
    try:
        envelope = etree.Element(QName(SOAP_ENV, "Envelope"), nsmap=NSMAP)
        etree.SubElement(envelope, QName(SOAP_ENV, "Header"))
        body = etree.SubElement(envelope, QName(SOAP_ENV, "Body"))
        body.set(QName(WSU, "Id"), BODY_ID)
        body.append(payload)
    except (TypeError, ValueError) as exc:
        raise EnvelopeConstructionError("Could not build SOAP envelope", cause=str(exc)) from exc
    return envelope


def get_header(envelope: etree._Element) -> etree._Element:
    header = envelope.find(QName(SOAP_ENV, "Header"))
    if header is None:
        raise EnvelopeConstructionError("SOAP envelope has no Header")
    return header


def get_body(envelope: etree._Element) -> etree._Element:
    body = envelope.find(QName(SOAP_ENV, "Body"))
    if body is None:
        raise EnvelopeConstructionError("SOAP envelope has no Body")
    return body
