import logging
import sys
from pathlib import Path

from cygnum_gateway import GatewayConfig, ServiceVariant, SoapMessageService, SoapPoster

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example_submit")


def main(path: str):
    # Credentials and key store come from CYGNUM_* environment variables
    cfg = GatewayConfig.from_env()
    service = SoapMessageService(cfg)

    result = service.build_form_submission_payload(Path(path).read_bytes())
    if not result.ok:
        logger.error("Could not build signed payload (%s): %s", result.kind, result.error)
        return 1

    with SoapPoster(cfg) as poster:
        resp = poster.post(result.payload, ServiceVariant.SUBMIT_DATA)
    logger.info("Gateway answered %s", resp.status)
    print(resp.body)
    return 0 if resp.status < 400 else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else "form.xml"))
