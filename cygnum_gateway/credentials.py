import base64
import binascii
from dataclasses import dataclass
from typing import Tuple

import jks
from jks.util import KeystoreSignatureException
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from .config import GatewayConfig
from .errors import CredentialError


@dataclass(frozen=True)
class KeyMaterial:
    """Private key and certificate for one signing call. Not cached."""

    private_key: rsa.RSAPrivateKey
    certificate: x509.Certificate

    def private_key_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def certificate_der(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.DER)

    def certificate_b64(self) -> str:
        return base64.b64encode(self.certificate_der()).decode("ascii")


def decode_key_store(blob: str | bytes) -> bytes:
    if isinstance(blob, str):
        try:
            blob = blob.encode("ascii")
        except UnicodeEncodeError as exc:
            raise CredentialError("Key store blob is not valid base64", cause=str(exc)) from exc
    if not blob or not blob.strip():
        raise CredentialError("Key store blob is empty")
    # Config values are often wrapped across lines
    compact = b"".join(blob.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CredentialError("Key store blob is not valid base64", cause=str(exc)) from exc


def _load_jks(data: bytes, store_password: str, alias: str, key_password: str) -> Tuple[bytes, bytes]:
    try:
        keystore = jks.KeyStore.loads(data, store_password, try_decrypt_keys=False)
    except KeystoreSignatureException as exc:
        raise CredentialError("Key store password is incorrect", cause=str(exc)) from exc
    except Exception as exc:
        raise CredentialError("Key store could not be opened", cause=str(exc)) from exc

    # JKS aliases are case-insensitive
    wanted = alias.lower()
    private_keys = {name.lower(): entry for name, entry in keystore.private_keys.items()}
    if wanted not in private_keys:
        other_entries = {name.lower() for name in keystore.entries}
        if wanted in other_entries:
            raise CredentialError(f"Alias {alias!r} does not refer to a private key entry")
        raise CredentialError(f"Alias {alias!r} not found in key store")

    entry = private_keys[wanted]
    if not entry.is_decrypted():
        try:
            entry.decrypt(key_password)
        except Exception as exc:
            raise CredentialError(f"Private key {alias!r} could not be decrypted", cause=str(exc)) from exc
    if not entry.cert_chain:
        raise CredentialError(f"Alias {alias!r} has no certificate chain")
    _cert_type, cert_der = entry.cert_chain[0]
    return entry.pkey_pkcs8, cert_der


def _load_pkcs12(data: bytes, store_password: str, alias: str) -> KeyMaterial:
    try:
        bundle = pkcs12.load_pkcs12(data, store_password.encode("utf-8"))
    except ValueError as exc:
        raise CredentialError(
            "Key store could not be opened; password is incorrect or data is not PKCS#12",
            cause=str(exc),
        ) from exc
    if bundle.key is None or bundle.cert is None:
        raise CredentialError(f"Alias {alias!r} does not refer to a private key entry")
    friendly_name = bundle.cert.friendly_name
    if friendly_name is not None and friendly_name.decode("utf-8", "replace").lower() != alias.lower():
        raise CredentialError(f"Alias {alias!r} not found in key store")
    return _key_material(bundle.key, bundle.cert.certificate, alias)


def _key_material(private_key, certificate: x509.Certificate, alias: str) -> KeyMaterial:
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CredentialError(f"Private key {alias!r} is not an RSA key")
    return KeyMaterial(private_key=private_key, certificate=certificate)


def load_key_material(cfg: GatewayConfig) -> KeyMaterial:
    """Decode the configured key store in memory and return the aliased key and certificate."""
    data = decode_key_store(cfg.key_store)
    alias = cfg.private_key_alias
    if cfg.key_store_type.lower() == "pkcs12":
        return _load_pkcs12(data, cfg.key_store_password, alias)

    key_der, cert_der = _load_jks(data, cfg.key_store_password, alias, cfg.effective_key_password)
    try:
        private_key = serialization.load_der_private_key(key_der, password=None)
        certificate = x509.load_der_x509_certificate(cert_der)
    except ValueError as exc:
        raise CredentialError(f"Key entry {alias!r} is malformed", cause=str(exc)) from exc
    return _key_material(private_key, certificate, alias)
