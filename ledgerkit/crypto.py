"""
Key material and signers for transaction signing.

Keys are ECDSA keys over NIST P-256 or secp256k1. Signatures are encoded as
raw ``r || s`` and public keys as raw uncompressed ``X || Y`` so they can be
carried verbatim in transaction envelopes and account records.
"""
import hashlib
import logging
from enum import Enum
from typing import Optional, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature, encode_dss_signature
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .ec_constants import P256_N, SECP256K1_N, SCALAR_SIZE

logger = logging.getLogger(__name__)


class SignatureAlgorithm(str, Enum):
    """Supported signature algorithms."""
    ECDSA_P256 = "ECDSA_P256"
    ECDSA_secp256k1 = "ECDSA_secp256k1"


class HashAlgorithm(str, Enum):
    """Supported hash algorithms for signing."""
    SHA2_256 = "SHA2_256"
    SHA3_256 = "SHA3_256"


_CURVES = {
    SignatureAlgorithm.ECDSA_P256: (ec.SECP256R1, P256_N),
    SignatureAlgorithm.ECDSA_secp256k1: (ec.SECP256K1, SECP256K1_N),
}

_HASHES = {
    HashAlgorithm.SHA2_256: hashes.SHA256,
    HashAlgorithm.SHA3_256: hashes.SHA3_256,
}


class Signer(Protocol):
    """Protocol for key signers, local or external (HSM, KMS)."""
    public_key: bytes

    def sign(self, message: bytes) -> bytes:
        """Sign message and return the raw signature bytes"""
        ...


def _curve(sig_algo: SignatureAlgorithm) -> ec.EllipticCurve:
    try:
        curve_cls, _ = _CURVES[SignatureAlgorithm(sig_algo)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported signature algorithm: {sig_algo}")
    return curve_cls()


def _hash(hash_algo: HashAlgorithm) -> hashes.HashAlgorithm:
    try:
        return _HASHES[HashAlgorithm(hash_algo)]()
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported hash algorithm: {hash_algo}")


def generate_private_key(
    sig_algo: SignatureAlgorithm = SignatureAlgorithm.ECDSA_P256,
    seed: Optional[bytes] = None
) -> ec.EllipticCurvePrivateKey:
    """
    Generate a private key for the given algorithm.

    Args:
        sig_algo: Signature algorithm (selects the curve)
        seed: Optional seed; the same seed always yields the same key

    Returns:
        Private key object
    """
    curve = _curve(sig_algo)
    if seed is None:
        return ec.generate_private_key(curve)

    _, order = _CURVES[SignatureAlgorithm(sig_algo)]
    scalar = int.from_bytes(hashlib.sha256(seed).digest(), "big") % (order - 1) + 1
    return ec.derive_private_key(scalar, curve)


def private_key_from_hex(
    private_key_hex: str,
    sig_algo: SignatureAlgorithm = SignatureAlgorithm.ECDSA_P256
) -> ec.EllipticCurvePrivateKey:
    """
    Decode a hex encoded private key scalar.

    Raises:
        ValueError: If the hex string is invalid or out of range for the curve
    """
    value = private_key_hex[2:] if private_key_hex.startswith("0x") else private_key_hex
    try:
        scalar = int(value, 16)
    except ValueError:
        raise ValueError("Private key must be a hex string")

    _, order = _CURVES[SignatureAlgorithm(sig_algo)]
    if not 1 <= scalar < order:
        raise ValueError(f"Private key out of range for {sig_algo}")
    return ec.derive_private_key(scalar, _curve(sig_algo))


def encode_public_key(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Encode a public key as raw X || Y."""
    return public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)[1:]


def decode_public_key(raw: bytes, sig_algo: SignatureAlgorithm) -> ec.EllipticCurvePublicKey:
    """Decode a raw X || Y public key."""
    if len(raw) != 2 * SCALAR_SIZE:
        raise ValueError(f"Public key must be {2 * SCALAR_SIZE} bytes, got {len(raw)}")
    return ec.EllipticCurvePublicKey.from_encoded_point(_curve(sig_algo), b"\x04" + raw)


class InMemorySigner:
    """Signer holding a private key in process memory."""

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        hash_algo: HashAlgorithm = HashAlgorithm.SHA3_256
    ):
        self._private_key = private_key
        self.hash_algo = HashAlgorithm(hash_algo)
        self.public_key = encode_public_key(private_key.public_key())

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message with the private key.

        The message is hashed with the signer's hash algorithm.

        Returns:
            64-byte raw r || s signature
        """
        der = self._private_key.sign(message, ec.ECDSA(_hash(self.hash_algo)))
        r, s = decode_dss_signature(der)
        return r.to_bytes(SCALAR_SIZE, "big") + s.to_bytes(SCALAR_SIZE, "big")

    def __repr__(self) -> str:
        return f"InMemorySigner(public_key={self.public_key.hex()[:16]}...)"


def verify_signature(
    public_key: bytes,
    sig_algo: SignatureAlgorithm,
    hash_algo: HashAlgorithm,
    message: bytes,
    signature: bytes
) -> bool:
    """
    Verify a raw r || s signature.

    Returns:
        True if the signature is valid, False otherwise
    """
    if len(signature) != 2 * SCALAR_SIZE:
        return False
    try:
        key = decode_public_key(public_key, sig_algo)
    except ValueError as e:
        logger.debug(f"Cannot decode public key for verification: {e}")
        return False

    r = int.from_bytes(signature[:SCALAR_SIZE], "big")
    s = int.from_bytes(signature[SCALAR_SIZE:], "big")
    try:
        key.verify(encode_dss_signature(r, s), message, ec.ECDSA(_hash(hash_algo)))
        return True
    except InvalidSignature:
        return False
