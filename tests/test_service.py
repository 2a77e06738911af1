import base64
import hashlib
from concurrent.futures import ThreadPoolExecutor

import pytest
import xmlsec
from lxml import etree
from lxml.etree import QName

from cygnum_gateway import (
    CredentialError,
    PayloadParseError,
    ServiceVariant,
    SigningResult,
    SoapMessageService,
)
from cygnum_gateway.soap.constants import DS, EXC_C14N, SOAP_ENV, WSA, WSSE, WSU

WSU_ID = QName(WSU, "Id").text


def _parse(result: SigningResult) -> etree._Element:
    assert result.ok, result.error
    return etree.fromstring(result.payload.encode("utf-8"))


def test_minimal_submission_example(make_config):
    result = SoapMessageService(make_config()).build_form_submission_payload("<Data/>")
    assert result.ok
    assert result.kind is None
    assert result.payload.startswith('<?xml version="1.0" encoding="UTF-8"?>')

    root = _parse(result)
    security = root.findall(f"{{{SOAP_ENV}}}Header/{{{WSSE}}}Security")
    assert len(security) == 1
    assert len(security[0].findall(QName(DS, "Signature"))) == 1
    assert len(root.findall(f".//{{{WSSE}}}UsernameToken")) == 1
    assert len(root.findall(f".//{{{WSSE}}}BinarySecurityToken")) == 1

    data = root.findall(".//Data")
    assert len(data) == 1
    assert data[0].getparent().tag == QName(SOAP_ENV, "Body").text
    assert root.find(f"{{{SOAP_ENV}}}Header/{{{WSA}}}Action").text.endswith("/SendData")


def test_token_ids_derive_from_one_correlation_id(make_config):
    root = _parse(SoapMessageService(make_config()).build_form_submission_payload(b"<Data/>"))
    ut_id = root.find(f".//{{{WSSE}}}UsernameToken").get(WSU_ID)
    bst_id = root.find(f".//{{{WSSE}}}BinarySecurityToken").get(WSU_ID)
    str_uri = root.find(f".//{{{DS}}}KeyInfo/{{{WSSE}}}SecurityTokenReference/{{{WSSE}}}Reference").get("URI")

    assert ut_id.startswith("uuid-") and ut_id.endswith("-1")
    base = ut_id[len("uuid-"):-len("-1")]
    assert bst_id == f"uuid-{base}-2"
    assert str_uri == f"#{bst_id}"


def test_get_urn_payload_reads_configured_file(make_config, tmp_path):
    path = tmp_path / "get_urn.xml"
    path.write_text('<GetURN xmlns="urn:cygnum"/>')
    result = SoapMessageService(make_config(fetch_reference_payload_path=path)).build_get_urn_payload()

    root = _parse(result)
    assert root.find(f"{{{SOAP_ENV}}}Header/{{{WSA}}}Action").text.endswith("/GetData")
    assert root.find(f"{{{SOAP_ENV}}}Body/{{urn:cygnum}}GetURN") is not None


def test_get_urn_payload_without_file_fails(make_config, tmp_path):
    result = SoapMessageService(
        make_config(fetch_reference_payload_path=tmp_path / "missing.xml")
    ).build_get_urn_payload()
    assert not result.ok
    assert result.kind == "PayloadParseError"


def test_malformed_payload_returns_parse_error_without_document(make_config):
    result = SoapMessageService(make_config()).build_form_submission_payload("<Data>")
    assert not result.ok
    assert result.payload is None
    assert isinstance(result.error, PayloadParseError)
    with pytest.raises(PayloadParseError):
        result.unwrap()


def test_submission_without_payload_fails(make_config):
    result = SoapMessageService(make_config()).build(ServiceVariant.SUBMIT_DATA)
    assert isinstance(result.error, PayloadParseError)


def test_wrong_store_password_fails_before_signing(make_config, monkeypatch):
    calls = []
    monkeypatch.setattr("cygnum_gateway.service.sign_envelope", lambda *a, **kw: calls.append(a))
    result = SoapMessageService(make_config(key_store_password="wrong")).build_form_submission_payload(
        "<Data/>"
    )
    assert isinstance(result.error, CredentialError)
    assert result.payload is None
    assert calls == []


def test_error_message_does_not_leak_credentials(make_config):
    cfg = make_config(key_store_password="hunter2-wrong", private_key_alias="cygnum")
    result = SoapMessageService(cfg).build_form_submission_payload("<Data/>")
    text = str(result.error)
    assert "hunter2-wrong" not in text
    assert cfg.password not in text
    assert cfg.key_store[:32] not in text


def test_legacy_to_id_still_verifies_body_reference(make_config, cert_pem):
    root = _parse(
        SoapMessageService(make_config(to_carries_body_id=True)).build_form_submission_payload(
            "<Data><Value>42</Value></Data>"
        )
    )
    body = root.find(f"{{{SOAP_ENV}}}Body")
    timestamp = root.find(f".//{{{WSU}}}Timestamp")
    assert root.find(f".//{{{WSA}}}To").get(WSU_ID) == "_1"
    assert body.get(WSU_ID) == "_1"

    ctx = xmlsec.SignatureContext()
    ctx.key = xmlsec.Key.from_memory(cert_pem, xmlsec.KeyFormat.CERT_PEM, None)
    ctx.register_id(body, "Id", WSU)
    ctx.register_id(timestamp, "Id", WSU)
    ctx.verify(root.find(f".//{{{DS}}}Signature"))

    body_ref = root.find(f".//{{{DS}}}Reference[@URI='#_1']")
    c14n = etree.tostring(body, method="c14n", exclusive=True, with_comments=False)
    assert base64.b64decode(body_ref.findtext(QName(DS, "DigestValue"))) == hashlib.sha1(c14n).digest()


def test_sign_returns_element(make_config):
    envelope = SoapMessageService(make_config()).sign(ServiceVariant.SUBMIT_DATA, "<Data/>")
    assert envelope.tag == QName(SOAP_ENV, "Envelope").text
    assert envelope.find(f".//{{{DS}}}SignatureValue").text
    assert envelope.find(f".//{{{DS}}}KeyInfo/{{{WSSE}}}SecurityTokenReference") is not None
    transforms = envelope.findall(f".//{{{DS}}}Reference/{{{DS}}}Transforms/{{{DS}}}Transform")
    assert [t.get("Algorithm") for t in transforms] == [EXC_C14N, EXC_C14N]


def test_concurrent_invocations_do_not_share_state(make_config):
    service = SoapMessageService(make_config())
    payloads = [f"<Data><N>{n}</N></Data>" for n in range(4)]
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(service.build_form_submission_payload, payloads))

    roots = [_parse(result) for result in results]
    ut_ids = {root.find(f".//{{{WSSE}}}UsernameToken").get(WSU_ID) for root in roots}
    message_ids = {root.find(f".//{{{WSA}}}MessageID").text for root in roots}
    assert len(ut_ids) == len(payloads)
    assert len(message_ids) == len(payloads)
    assert sorted(root.findtext(".//N") for root in roots) == ["0", "1", "2", "3"]


def test_signing_result_requires_exactly_one_side():
    with pytest.raises(ValueError):
        SigningResult()
    with pytest.raises(ValueError):
        SigningResult(payload="x", error=PayloadParseError("boom"))
    assert SigningResult.success("<x/>").unwrap() == "<x/>"
