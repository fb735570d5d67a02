import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Hash algorithms WebSub hubs may use in X-Hub-Signature
SUPPORTED_ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha384": hashlib.sha384,
    "sha512": hashlib.sha512,
}


@dataclass
class SignatureHeader:
    algorithm: str
    hex_digest: str


def parse_signature_header(value: Optional[str]) -> Optional[SignatureHeader]:
    """Parse 'algorithm=hexdigest' (split on the first '=' only)"""
    if not value or "=" not in value:
        return None
    algorithm, hex_digest = value.split("=", 1)
    return SignatureHeader(algorithm=algorithm.strip().lower(), hex_digest=hex_digest.strip().lower())


def verify_signature(secret: str, signature_header: Optional[str], raw_body: Union[bytes, str]) -> bool:
    """Check an X-Hub-Signature header against the raw request body"""
    header = parse_signature_header(signature_header)
    if header is None:
        logger.warning("Missing or malformed signature header")
        return False

    digestmod = SUPPORTED_ALGORITHMS.get(header.algorithm)
    if digestmod is None:
        logger.warning(f"Unsupported signature algorithm: {header.algorithm}")
        return False

    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    expected = hmac.new(secret.encode("utf-8"), raw_body, digestmod).hexdigest().lower()
    return hmac.compare_digest(expected.encode("ascii"), header.hex_digest.encode("utf-8"))
