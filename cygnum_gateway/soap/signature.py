"""Detached WS-Security signature over the Timestamp and the Body."""
from dataclasses import dataclass

import xmlsec
from lxml import etree
from lxml.etree import QName

from ..errors import SignatureError
from .constants import BODY_ID, TIMESTAMP_ID, WSSE, WSU, X509V3_TOKEN_TYPE


@dataclass(frozen=True)
class SignatureAlgorithm:
    name: str
    sign_transform: object
    digest_transform: object


_ALGORITHMS = {
    "sha1": ("RSA_SHA1", "SHA1"),
    "sha256": ("RSA_SHA256", "SHA256"),
    "sha512": ("RSA_SHA512", "SHA512"),
}


def signature_algorithm(sig_hash: str = "sha1") -> SignatureAlgorithm:
    """Resolve the RSA signature and digest transforms for ``sig_hash``."""
    algo = (sig_hash or "sha1").lower()
    if algo not in _ALGORITHMS:
        raise SignatureError(f"Unsupported signature algorithm {sig_hash!r}")
    sign_name, digest_name = _ALGORITHMS[algo]
    return SignatureAlgorithm(
        name=algo,
        sign_transform=getattr(xmlsec.Transform, sign_name),
        digest_transform=getattr(xmlsec.Transform, digest_name),
    )


def _security_token_reference(key_info: etree._Element, bst_id: str) -> etree._Element:
    # Verifiers resolve the certificate through the BST; no inline X509Data.
    str_el = etree.SubElement(key_info, QName(WSSE, "SecurityTokenReference"))
    etree.SubElement(
        str_el,
        QName(WSSE, "Reference"),
        {"URI": f"#{bst_id}", "ValueType": X509V3_TOKEN_TYPE},
    )
    return str_el


def sign_envelope(
    envelope: etree._Element,
    *,
    security: etree._Element,
    timestamp: etree._Element,
    body: etree._Element,
    bst_id: str,
    private_key_pem: bytes,
    algorithm: SignatureAlgorithm,
) -> etree._Element:
    """Sign ``#_0`` (Timestamp) and ``#_1`` (Body) and append ``Signature`` to ``security``.

    Both references use exclusive C14N (no comments) and the same digest
    method. The resulting ``Signature`` element is returned.
    """
    if timestamp.get(QName(WSU, "Id")) != TIMESTAMP_ID or body.get(QName(WSU, "Id")) != BODY_ID:
        raise SignatureError("Timestamp and Body must carry the reserved u:Id values")

    try:
        signature = xmlsec.template.create(
            envelope,
            xmlsec.Transform.EXCL_C14N,
            algorithm.sign_transform,
        )
        for target_id in (TIMESTAMP_ID, BODY_ID):
            ref = xmlsec.template.add_reference(
                signature, algorithm.digest_transform, uri=f"#{target_id}"
            )
            xmlsec.template.add_transform(ref, xmlsec.Transform.EXCL_C14N)
        key_info = xmlsec.template.ensure_key_info(signature)
        _security_token_reference(key_info, bst_id)
        security.append(signature)

        ctx = xmlsec.SignatureContext()
        ctx.key = xmlsec.Key.from_memory(private_key_pem, xmlsec.KeyFormat.PEM, None)
        # Digests are computed over the referenced subtrees only.
        ctx.register_id(body, "Id", WSU)
        ctx.register_id(timestamp, "Id", WSU)
        ctx.sign(signature)
    except (xmlsec.Error, ValueError, TypeError) as exc:
        raise SignatureError("Could not sign SOAP envelope", cause=str(exc)) from exc
    return signature
