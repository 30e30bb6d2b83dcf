"""
Layer 6 — SIGNATURES: RSA PKCS#1 v1.5
=====================================
Raw sign / verify over bytes with a federation identity key.

Federation peers verify PKCS#1 v1.5 signatures (not PSS), so that is what
is produced here. Digests:
    sha1     legacy peers
    sha256   default
    sha512   HTTP-signature callers

Keys are PEM text: the private key as produced by layer 3, the public key
in either PEM flavor from layer 2.

Dependencies: cryptography >= 41.0
"""

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from ..errors import UnsupportedAlgorithm
from .layer2_keyformat import PemText
from .layer3_rsa import load_private_key, load_public_key

_DIGESTS = {
    "sha1":   hashes.SHA1,
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}


def _digest(alg: str) -> hashes.HashAlgorithm:
    try:
        return _DIGESTS[alg.lower()]()
    except (KeyError, AttributeError):
        raise UnsupportedAlgorithm(f"Unsupported signature digest '{alg}'.") from None


def rsa_sign(data: bytes, prvkey: PemText, alg: str = "sha256") -> bytes:
    digest = _digest(alg)
    return load_private_key(prvkey).sign(data, padding.PKCS1v15(), digest)


def rsa_verify(data: bytes, signature: bytes, pubkey: PemText,
               alg: str = "sha256") -> bool:
    digest = _digest(alg)
    key = load_public_key(pubkey)
    try:
        key.verify(signature, data, padding.PKCS1v15(), digest)
        return True
    except InvalidSignature:
        return False
