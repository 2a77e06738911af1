import base64
import datetime as dt
from datetime import timezone

import jks
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from cygnum_gateway import GatewayConfig

STORE_PASSWORD = "changeit"
ALIAS = "cygnum"
GATEWAY_URL = "https://gateway.example/GatewayOOServices.svc"


def _self_signed():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = issuer = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "GB"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
            x509.NameAttribute(NameOID.COMMON_NAME, "test.example"),
        ]
    )
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(dt.datetime.now(timezone.utc) - dt.timedelta(days=1))
        .not_valid_after(dt.datetime.now(timezone.utc) + dt.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return key, cert


def _jks_blob(key, cert, *, alias=ALIAS, password=STORE_PASSWORD, extra_entries=()):
    key_der = key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    cert_der = cert.public_bytes(serialization.Encoding.DER)
    entry = jks.PrivateKeyEntry.new(alias, [cert_der], key_der, "pkcs8")
    store = jks.KeyStore.new("jks", [entry, *extra_entries])
    return base64.b64encode(store.saves(password)).decode("ascii")


@pytest.fixture(scope="session")
def key_and_cert():
    return _self_signed()


@pytest.fixture(scope="session")
def cert_pem(key_and_cert):
    _key, cert = key_and_cert
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def jks_blob(key_and_cert):
    key, cert = key_and_cert
    return _jks_blob(key, cert)


@pytest.fixture(scope="session")
def jks_blob_with_trusted_cert(key_and_cert):
    key, cert = key_and_cert
    trusted = jks.TrustedCertEntry.new("ca", cert.public_bytes(serialization.Encoding.DER))
    return _jks_blob(key, cert, extra_entries=[trusted])


@pytest.fixture(scope="session")
def pkcs12_blob(key_and_cert):
    key, cert = key_and_cert
    data = pkcs12.serialize_key_and_certificates(
        ALIAS.encode("utf-8"),
        key,
        cert,
        None,
        serialization.BestAvailableEncryption(STORE_PASSWORD.encode("utf-8")),
    )
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def make_config(jks_blob):
    def _make(**overrides):
        values = dict(
            username="gateway-user",
            password="s3cret-pass",
            url=GATEWAY_URL,
            key_store=jks_blob,
            key_store_password=STORE_PASSWORD,
            private_key_alias=ALIAS,
        )
        values.update(overrides)
        return GatewayConfig(**values)

    return _make
