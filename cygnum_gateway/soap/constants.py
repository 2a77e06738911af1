"""Protocol constants shared by the envelope, header and signature steps.

The gateway compares these byte for byte, so they are spelled out here once.
"""
from enum import Enum

from zeep import ns

SOAP_ENV = ns.SOAP_ENV_12
WSA = ns.WSA
WSU = ns.WSU
WSSE = ns.WSSE
DS = ns.DS
EXC_C14N = "http://www.w3.org/2001/10/xml-exc-c14n#"

X509V3_TOKEN_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-x509-token-profile-1.0#X509v3"
)
BASE64_ENCODING_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-soap-message-security-1.0#Base64Binary"
)
PASSWORD_TEXT_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-username-token-profile-1.0#PasswordText"
)
ANONYMOUS_ADDRESS = "http://www.w3.org/2005/08/addressing/anonymous"

# One prefix per namespace, used everywhere in the envelope.
NSMAP = {
    "s": SOAP_ENV,
    "a": WSA,
    "u": WSU,
}
WSSE_PREFIX = "o"

TIMESTAMP_ID = "_0"
BODY_ID = "_1"
TIMESTAMP_TTL_SECONDS = 300

SOAP_CONTENT_TYPE = "application/soap+xml; charset=utf-8"


class ServiceVariant(Enum):
    """Remote gateway operation; selects the Action URI and the payload source."""

    FETCH_REFERENCE = "http://tempuri.org/IGatewayOOServices/GetData"
    SUBMIT_DATA = "http://tempuri.org/IGatewayOOServices/SendData"

    @property
    def action(self) -> str:
        return self.value
