import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

SUPPORTED_SIGNATURE_HASHES = ("sha1", "sha256", "sha512")
SUPPORTED_KEY_STORE_TYPES = ("jks", "pkcs12")

_TRUE = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class GatewayConfig:
    """Credentials, key store and endpoint for the Cygnum gateway."""

    username: str
    password: str = field(repr=False)
    url: str
    # Base64 of the key store file (JKS by default).
    key_store: str = field(repr=False)
    key_store_password: str = field(repr=False)
    private_key_alias: str
    key_password: Optional[str] = field(default=None, repr=False)
    key_store_type: str = "jks"
    # Payload file sent by the GetData (reference fetch) operation
    fetch_reference_payload_path: Optional[Path] = None
    # The legacy gateway only accepts rsa-sha1; newer deployments can raise this.
    signature_hash: str = "sha1"
    # Legacy profile: copy the Body's u:Id onto the a:To header as well.
    to_carries_body_id: bool = False
    timeout: int = 30
    verify_ssl: bool = True
    proxy_url: Optional[str] = None

    def __post_init__(self):
        if self.signature_hash.lower() not in SUPPORTED_SIGNATURE_HASHES:
            raise ConfigurationError(
                f"Unsupported signature hash {self.signature_hash!r}",
                cause=f"expected one of {', '.join(SUPPORTED_SIGNATURE_HASHES)}",
            )
        if self.key_store_type.lower() not in SUPPORTED_KEY_STORE_TYPES:
            raise ConfigurationError(
                f"Unsupported key store type {self.key_store_type!r}",
                cause=f"expected one of {', '.join(SUPPORTED_KEY_STORE_TYPES)}",
            )

    @property
    def effective_key_password(self) -> str:
        return self.key_password if self.key_password is not None else self.key_store_password

    @classmethod
    def from_env(cls, prefix: str = "CYGNUM_", environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        env = os.environ if environ is None else environ

        def _required(name: str) -> str:
            value = env.get(prefix + name)
            if not value:
                raise ConfigurationError(f"Missing required setting {prefix}{name}")
            return value

        payload_path = env.get(prefix + "GET_URN_PAYLOAD")
        try:
            timeout = int(env.get(prefix + "TIMEOUT", "30"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid {prefix}TIMEOUT", cause=str(exc)) from exc
        return cls(
            username=_required("USERNAME"),
            password=_required("PASSWORD"),
            url=_required("URL"),
            key_store=_required("KEY_STORE"),
            key_store_password=_required("KEY_STORE_PASSWORD"),
            private_key_alias=_required("PRIVATE_KEY_ALIAS"),
            key_password=env.get(prefix + "KEY_PASSWORD"),
            key_store_type=env.get(prefix + "KEY_STORE_TYPE", "jks"),
            fetch_reference_payload_path=Path(payload_path) if payload_path else None,
            signature_hash=env.get(prefix + "SIGNATURE_HASH", "sha1"),
            to_carries_body_id=env.get(prefix + "TO_CARRIES_BODY_ID", "").lower() in _TRUE,
            timeout=timeout,
            verify_ssl=env.get(prefix + "VERIFY_SSL", "true").lower() in _TRUE,
            proxy_url=env.get(prefix + "PROXY_URL") or None,
        )
