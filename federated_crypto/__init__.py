"""
federated_crypto — Key Codec + Hybrid Envelope
==============================================
RSA key encoding and payload sealing for a federated social network.
Byte-compatible with the other independent implementations in the
federation.

Layers:
    1  DER          — minimal ASN.1 DER (INTEGER, BIT STRING, SEQUENCE)
    2  KEY FORMAT   — PUBLIC KEY / RSA PUBLIC KEY PEM, compact "RSA.n.e"
    3  RSA          — key pair generation, PKCS#1 v1.5 sealing
    4  CIPHERS      — aes256cbc / aes256ctr registry + extension hooks
    5  ENVELOPE     — {encrypted, alg, data, key, iv} hybrid sealing
    6  SIGNATURES   — RSA PKCS#1 v1.5 sign / verify

License: Apache 2.0
"""

__version__ = "1.0.0"

from .errors import (
    FederatedCryptoError,
    DecodeError,
    FormatError,
    KeyGenError,
    SealingError,
    UnsealError,
    UnsupportedAlgorithm,
)
from .layers.layer1_der        import DERValue
from .layers.layer2_keyformat  import (
    RSAComponents,
    to_pem,
    to_legacy_rsa_pem,
    from_pem,
    rsa_to_pem,
    pem_to_rsa,
    to_compact_key_string,
    base64url_encode,
    base64url_decode,
)
from .layers.layer3_rsa        import KeyPair, KeyPairGenerator, new_keypair, seal_token, unseal_token
from .layers.layer4_ciphers    import CipherRegistry, CipherSpec, EncapsulationHook, default_registry
from .layers.layer5_envelope   import Envelope, EnvelopeCodec, encapsulate, unencapsulate
from .layers.layer6_signatures import rsa_sign, rsa_verify
from .config                   import CryptoConfig

__all__ = [
    "FederatedCryptoError",
    "DecodeError",
    "FormatError",
    "KeyGenError",
    "SealingError",
    "UnsealError",
    "UnsupportedAlgorithm",
    "DERValue",
    "RSAComponents",
    "to_pem",
    "to_legacy_rsa_pem",
    "from_pem",
    "rsa_to_pem",
    "pem_to_rsa",
    "to_compact_key_string",
    "base64url_encode",
    "base64url_decode",
    "KeyPair",
    "KeyPairGenerator",
    "new_keypair",
    "seal_token",
    "unseal_token",
    "CipherRegistry",
    "CipherSpec",
    "EncapsulationHook",
    "default_registry",
    "Envelope",
    "EnvelopeCodec",
    "encapsulate",
    "unencapsulate",
    "rsa_sign",
    "rsa_verify",
    "CryptoConfig",
]
