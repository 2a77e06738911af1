import logging

from cygnum_gateway import GatewayConfig, GatewayError, ServiceVariant, SoapMessageService, SoapPoster

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example_get_urn")


def main():
    # CYGNUM_GET_URN_PAYLOAD points at the GetData request file
    cfg = GatewayConfig.from_env()
    result = SoapMessageService(cfg).build_get_urn_payload()
    try:
        payload = result.unwrap()
    except GatewayError as e:
        logger.error(f"Failed to build GetData request: {e}")
        return

    with SoapPoster(cfg) as poster:
        resp = poster.post(payload, ServiceVariant.FETCH_REFERENCE)
    logger.info(f"GetData returned HTTP {resp.status}")
    print(resp.body)


if __name__ == "__main__":
    main()
