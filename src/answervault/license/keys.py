# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Key pair generation and license minting.

Used by the vendor-side ``answervault license`` commands. The private key
never ships with a deployment; deployments only receive the public key
(``ANSWERVAULT_PUBLIC_KEY``) and a minted token (``LICENSE_KEY``).
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from answervault.license.verifier import LicensePayload, b64url_encode

RSA_KEY_BITS = 2048


@dataclass(frozen=True)
class KeyPair:
    private_pem: str  # PKCS#8
    public_pem: str  # SubjectPublicKeyInfo


def generate_keypair(bits: int = RSA_KEY_BITS) -> KeyPair:
    """Generate an RSA key pair for signing licenses."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return KeyPair(private_pem.decode("ascii"), public_pem.decode("ascii"))


def env_escape_pem(pem: str) -> str:
    """Render a PEM on one line with literal ``\\n`` separators."""
    return pem.replace("\n", "\\n")


def mint_license(
    private_pem: str,
    customer_name: str,
    allowed_repo: str,
    expiry: int | None = None,
    issued_at: int | None = None,
) -> str:
    """Sign a license token.

    Args:
        private_pem: PEM encoded RSA private key.
        customer_name: Licensee name.
        allowed_repo: "owner/name", or "*" for any repository.
        expiry: Unix seconds after which the license is void. None = never.
        issued_at: Unix seconds; defaults to now.

    Returns:
        The ``payload.signature`` token.

    Raises:
        ValueError: If the key cannot be loaded or is not an RSA key.
    """
    private_key = serialization.load_pem_private_key(
        private_pem.encode("utf-8"), password=None
    )
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ValueError("License signing key must be an RSA private key")

    claims = LicensePayload(
        customer_name=customer_name,
        allowed_repo=allowed_repo,
        issued_at=int(time.time()) if issued_at is None else issued_at,
        expiry=expiry,
    )
    body = json.dumps(
        claims.model_dump(exclude_none=True), separators=(",", ":")
    ).encode("utf-8")
    payload_b64 = b64url_encode(body)
    signature = private_key.sign(
        payload_b64.encode("ascii"), padding.PKCS1v15(), hashes.SHA256()
    )
    return f"{payload_b64}.{b64url_encode(signature)}"


__all__ = ["KeyPair", "RSA_KEY_BITS", "env_escape_pem", "generate_keypair", "mint_license"]
