"""
crenv Provisioning - Key material.
"""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric import ec
from loguru import logger

from crenv.config.models import ProvisioningRequest

CSA_KEY_BYTES = 32


def generate_csa_encryption_key() -> str:
    """
    Generate a CSA encryption key for the job distributor.

    Returns:
        Hex-encoded secp256k1 private scalar (64 characters, no prefix).
    """
    private_key = ec.generate_private_key(ec.SECP256K1())
    value = private_key.private_numbers().private_value
    return value.to_bytes(CSA_KEY_BYTES, "big").hex()


def ensure_csa_key(request: ProvisioningRequest) -> tuple[ProvisioningRequest, str | None]:
    """
    Fill in the CSA encryption key when the request has none.

    The request is frozen, so a copy carrying the key is returned.

    Returns:
        (request to use, generated key or None when one was configured)
    """
    if request.config.jd.csa_encryption_key:
        return request, None

    key = generate_csa_encryption_key()
    jd = request.config.jd.model_copy(update={"csa_encryption_key": key})
    config = request.config.model_copy(update={"jd": jd})
    logger.info("🔑 Generated CSA encryption key for the Job Distributor")
    return request.model_copy(update={"config": config}), key
