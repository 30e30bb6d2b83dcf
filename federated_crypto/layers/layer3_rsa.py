"""
Layer 3 — RSA: Key Pairs + PKCS#1 v1.5 Sealing
===============================================
Key pair generation for federation identities, and the raw RSA
encryption used to seal envelope key material.

Key pairs:
  - private key: unencrypted PKCS#8 PEM ("BEGIN PRIVATE KEY")
  - public key:  SubjectPublicKeyInfo PEM ("BEGIN PUBLIC KEY")
  - generation goes through a named backend, selected by configuration,
    so a node can plug in an alternate entropy / provider source

Sealing uses PKCS#1 v1.5 padding, which is what every other node in the
federation decrypts. Maximum plaintext is modulus_bytes - 11:
    1024-bit ->  117 bytes
    2048-bit ->  245 bytes
    4096-bit ->  501 bytes

Public keys may arrive in either PEM flavor from layer 2; they are parsed
through layer 2 so 65-column bodies load the same as 64-column ones.

Dependencies: cryptography >= 41.0
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm as _BackendUnsupported
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa, padding

from .. import config as _config
from ..errors import FormatError, KeyGenError, SealingError, UnsealError
from .layer2_keyformat import PemText, from_pem, base64url_encode, base64url_decode

logger = logging.getLogger(__name__)

PKCS1_V15_OVERHEAD = 11

KeyGenBackend = Callable[[int, int], Optional[rsa.RSAPrivateKey]]


def _cryptography_backend(bits: int, public_exponent: int) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=public_exponent, key_size=bits)


# Extra backends are carried by CryptoConfig.keygen_backends.
BUILTIN_BACKENDS: Mapping[str, KeyGenBackend] = MappingProxyType({
    "cryptography": _cryptography_backend,
})


@dataclass(frozen=True)
class KeyPair:
    private_key_pem: str
    public_key_pem:  str


class KeyPairGenerator:
    """Produces RSA key pairs in PEM form."""

    def __init__(self, backend: str = None, public_exponent: int = None,
                 backends: Mapping[str, KeyGenBackend] = None):
        self.backend_name    = backend or _config.KEYGEN_BACKEND
        self.public_exponent = public_exponent or _config.RSA_PUBLIC_EXPONENT
        self.backends: Dict[str, KeyGenBackend] = dict(BUILTIN_BACKENDS)
        self.backends.update(backends or {})

    @classmethod
    def from_config(cls, cfg) -> "KeyPairGenerator":
        return cls(backend=cfg.keygen_backend, public_exponent=cfg.public_exponent,
                   backends=cfg.keygen_backends)

    def generate(self, bits: int) -> KeyPair:
        """
        Generate a fresh key pair of `bits` modulus length.
        Raises KeyGenError if the backend yields no usable key; not retried.
        """
        backend = self.backends.get(self.backend_name)
        if backend is None:
            raise KeyGenError(f"Unknown key generation backend '{self.backend_name}'.")
        try:
            private_key = backend(bits, self.public_exponent)
        except (ValueError, TypeError, _BackendUnsupported) as e:
            logger.error(f"new_keypair: {self.backend_name} failed for {bits} bits: {e}")
            raise KeyGenError(f"Cannot generate a {bits}-bit RSA key: {e}") from e
        if not isinstance(private_key, rsa.RSAPrivateKey):
            logger.error(f"new_keypair: {self.backend_name} returned no usable key")
            raise KeyGenError(f"Backend '{self.backend_name}' returned no RSA key.")

        pair = KeyPair(
            private_key_pem=private_key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            ).decode("ascii"),
            public_key_pem=private_key.public_key().public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            ).decode("ascii"),
        )
        logger.info(f"Generated {bits}-bit RSA key pair via {self.backend_name}")
        return pair


def new_keypair(bits: int = None, cfg=None) -> KeyPair:
    """Convenience wrapper: generate with configured defaults."""
    if cfg is not None:
        return KeyPairGenerator.from_config(cfg).generate(bits or cfg.key_bits)
    return KeyPairGenerator().generate(bits or _config.RSA_KEY_BITS)


# ── key loading ──────────────────────────────────────────────────────────────

def load_public_key(pem: PemText) -> rsa.RSAPublicKey:
    """Either PEM flavor -> RSAPublicKey. Raises FormatError / DecodeError."""
    components = from_pem(pem)
    try:
        return rsa.RSAPublicNumbers(components.e, components.n).public_key()
    except (ValueError, _BackendUnsupported) as e:
        raise FormatError(f"Cannot load public key: {e}") from e


def load_private_key(pem: PemText) -> rsa.RSAPrivateKey:
    try:
        if isinstance(pem, str):
            pem = pem.encode("ascii")
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError, _BackendUnsupported) as e:
        raise FormatError(f"Cannot load private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise FormatError("Private key is not an RSA key.")
    return key


def max_seal_size(pubkey: PemText) -> int:
    """Largest plaintext seal() accepts for this key."""
    return load_public_key(pubkey).key_size // 8 - PKCS1_V15_OVERHEAD


# ── sealing ──────────────────────────────────────────────────────────────────

def seal(plaintext: bytes, pubkey: PemText) -> bytes:
    """
    RSA PKCS#1 v1.5 encrypt. A malformed key raises FormatError or
    DecodeError; a plaintext the key cannot hold raises SealingError.
    """
    key = load_public_key(pubkey)
    try:
        return key.encrypt(plaintext, padding.PKCS1v15())
    except (ValueError, TypeError) as e:
        raise SealingError(f"RSA sealing of {len(plaintext)} bytes failed: {e}") from e


def unseal(ciphertext: bytes, prvkey: PemText) -> bytes:
    """RSA PKCS#1 v1.5 decrypt. Raises FormatError for a bad key, else UnsealError."""
    key = load_private_key(prvkey)
    try:
        return key.decrypt(ciphertext, padding.PKCS1v15())
    except (ValueError, TypeError) as e:
        raise UnsealError(f"RSA unsealing failed: {e}") from e


def seal_token(token: Union[str, bytes], pubkey: PemText) -> str:
    """Seal a short token for its owner and return base64url text."""
    if isinstance(token, str):
        token = token.encode("utf-8")
    return base64url_encode(seal(token, pubkey))


def unseal_token(sealed: str, prvkey: PemText) -> str:
    return unseal(base64url_decode(sealed), prvkey).decode("utf-8")
