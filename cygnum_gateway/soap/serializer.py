from lxml import etree

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def serialize_envelope(envelope: etree._Element) -> bytes:
    """Render the signed tree as UTF-8 bytes, untouched apart from the XML declaration.

    No pretty printing and no re-canonicalization: the signature digests were
    computed over this exact tree.
    """
    return XML_DECLARATION.encode("ascii") + b"\n" + etree.tostring(envelope, encoding="UTF-8")


def serialize_envelope_str(envelope: etree._Element) -> str:
    return serialize_envelope(envelope).decode("utf-8")
