import logging
from dataclasses import dataclass
from typing import Optional

import requests
from lxml import etree

from .config import GatewayConfig
from .errors import GatewayTransportError, PayloadParseError
from .soap.constants import SOAP_CONTENT_TYPE, ServiceVariant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoapResponse:
    status: int
    body: str

    def xml(self) -> etree._Element:
        try:
            return etree.fromstring(
                self.body.encode("utf-8"),
                etree.XMLParser(resolve_entities=False, no_network=True),
            )
        except etree.XMLSyntaxError as exc:
            raise PayloadParseError("Gateway response is not XML", cause=str(exc)) from exc


class SoapPoster:
    """Posts signed payloads to the gateway. One attempt per call; retry policy is the caller's."""

    def __init__(self, cfg: GatewayConfig, session: Optional[requests.Session] = None):
        self.cfg = cfg
        # Injected sessions are left as configured; settings go on each request.
        self._owns_session = session is None
        self._session = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "SoapPoster":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def post(self, payload: str | bytes, variant: ServiceVariant) -> SoapResponse:
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        headers = {"Content-Type": f'{SOAP_CONTENT_TYPE}; action="{variant.action}"'}
        logger.info("POST %s (%s)", self.cfg.url, variant.name)
        try:
            resp = self._session.post(
                self.cfg.url,
                data=data,
                headers=headers,
                timeout=self.cfg.timeout,
                verify=self.cfg.verify_ssl,  # noqa: S501 (off only for sandbox)
                proxies=self._proxies(),
            )
        except requests.RequestException as exc:
            raise GatewayTransportError("Gateway connection failed", cause=str(exc)) from exc
        logger.debug("Gateway answered %s for %s", resp.status_code, variant.name)
        return SoapResponse(status=resp.status_code, body=resp.text)

    def _proxies(self) -> Optional[dict]:
        if not self.cfg.proxy_url:
            return None
        return {"http": self.cfg.proxy_url, "https": self.cfg.proxy_url}
