"""
Error taxonomy
==============
Every failure the key codec and envelope layers can report.

    DecodeError           malformed DER
    FormatError           malformed PEM / base64 / envelope fields
    KeyGenError           backend refused to produce a key pair
    SealingError          RSA encryption of key material failed
    UnsealError           RSA or symmetric decryption failed
    UnsupportedAlgorithm  algorithm not registered on this node

Callers must treat any of these as "operation not performed" and must
never persist or transmit a partially sealed envelope.
"""


class FederatedCryptoError(Exception):
    """Base class for all federated_crypto errors."""


class DecodeError(FederatedCryptoError, ValueError):
    """Malformed DER input: truncated length, unknown tag, trailing bytes."""


class FormatError(FederatedCryptoError, ValueError):
    """Malformed PEM document, base64 text, or envelope record."""


class KeyGenError(FederatedCryptoError, RuntimeError):
    """The key generation backend returned no usable key."""


class SealingError(FederatedCryptoError):
    """RSA encryption of symmetric key material failed."""


class UnsealError(FederatedCryptoError):
    """RSA or symmetric decryption failed (wrong key, corrupt data)."""


class UnsupportedAlgorithm(FederatedCryptoError, LookupError):
    """The named algorithm is not registered."""
