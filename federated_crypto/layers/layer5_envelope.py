"""
Layer 5 — ENVELOPE: RSA + AES Hybrid Sealing
============================================
Seals an arbitrary payload for a recipient known only by an RSA public key.

The payload is encrypted with a fresh symmetric key and IV; the key and the
IV are then each RSA-sealed (PKCS#1 v1.5) for the recipient. Key and IV are
sealed separately, never concatenated.

Envelope record (field names and encodings are the federation wire format):

    {
        "encrypted": true,
        "alg":  "aes256cbc",
        "data": base64url(ciphertext),
        "key":  base64url(RSA(key)),
        "iv":   base64url(RSA(iv))
    }

An envelope without "alg" predates the field and means aes256cbc.

Algorithms the registry does not know are handed to the extension hooks
on the encrypt side, whose result is returned as-is. Decrypt side has no
such fallback: an unknown alg raises UnsupportedAlgorithm.

A recipient key too small to hold the padded key material raises
SealingError. No envelope is produced in that case.
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .. import config as _config
from ..errors import FormatError, SealingError, UnsealError, UnsupportedAlgorithm
from .layer2_keyformat import PemText, base64url_encode, base64url_decode
from .layer3_rsa import seal, unseal

logger = logging.getLogger(__name__)

LEGACY_ALG = "aes256cbc"

_FIELDS = ("encrypted", "alg", "data", "key", "iv")


@dataclass(frozen=True)
class Envelope:
    alg:       str
    data:      str
    key:       str
    iv:        str
    encrypted: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in _FIELDS}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Envelope":
        missing = [name for name in ("data", "key", "iv") if record.get(name) is None]
        if missing:
            raise FormatError(f"Envelope is missing field(s): {', '.join(missing)}.")
        wrong = [name for name in ("data", "key", "iv") if not isinstance(record[name], str)]
        if wrong:
            raise FormatError(f"Envelope field(s) must be base64url text: {', '.join(wrong)}.")
        if not isinstance(record.get("alg") or LEGACY_ALG, str):
            raise FormatError("Envelope alg must be text.")
        return cls(
            alg=record.get("alg") or LEGACY_ALG,
            data=record["data"],
            key=record["key"],
            iv=record["iv"],
            encrypted=bool(record.get("encrypted", True)),
        )

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Envelope":
        try:
            record = json.loads(text)
        except (TypeError, ValueError) as e:
            raise FormatError(f"Envelope is not valid JSON: {e}") from e
        if not isinstance(record, dict):
            raise FormatError("Envelope JSON must be an object.")
        return cls.from_dict(record)


class EnvelopeCodec:
    """Hybrid encapsulation bound to one CryptoConfig."""

    def __init__(self, cfg: "_config.CryptoConfig" = None):
        self.config = cfg or _config.CryptoConfig.from_env()

    @property
    def registry(self):
        return self.config.registry

    def encapsulate(self, data: Union[str, bytes], pubkey: PemText,
                    alg: str = None) -> Any:
        """
        Seal `data` for the holder of `pubkey`.
        Returns an Envelope, or whatever an extension hook produced for
        an unregistered alg (the untouched data if no hook claims it).
        """
        alg    = alg or self.config.default_alg
        cipher = self.registry.resolve(alg)
        if cipher is None:
            # hooks see the name exactly as the caller spelled it
            return self.registry.encapsulate_with_hooks(data, pubkey, alg)

        if isinstance(data, str):
            data = data.encode("utf-8")

        # 1. Fresh symmetric key material for this envelope only
        key = os.urandom(cipher.key_size)
        iv  = os.urandom(cipher.iv_size)

        # 2. Encrypt the payload
        ciphertext = cipher.encrypt(data, key, iv)

        # 3. Seal key and IV separately for the recipient
        try:
            sealed_key = seal(key, pubkey)
            sealed_iv  = seal(iv, pubkey)
        except SealingError as e:
            logger.error(f"encapsulate: RSA sealing failed for '{alg}': {e}")
            raise

        envelope = Envelope(
            alg=cipher.name,
            data=base64url_encode(ciphertext),
            key=base64url_encode(sealed_key),
            iv=base64url_encode(sealed_iv),
        )
        logger.debug(
            f"encapsulate: alg={cipher.name} data={len(ciphertext)}B "
            f"key={len(sealed_key)}B iv={len(sealed_iv)}B"
        )
        return envelope

    def unencapsulate(self, envelope: Union[Envelope, Dict[str, Any], str, None],
                      prvkey: PemText) -> Optional[bytes]:
        """
        Recover the payload. An empty envelope yields None.
        Raises UnsupportedAlgorithm, FormatError or UnsealError.
        """
        if not envelope:
            return None
        if isinstance(envelope, (str, bytes)):
            envelope = Envelope.from_json(envelope)
        elif isinstance(envelope, dict):
            envelope = Envelope.from_dict(envelope)
        elif not isinstance(envelope, Envelope):
            raise FormatError(f"Unsupported envelope type {type(envelope).__name__}.")

        try:
            cipher = self.registry.require(envelope.alg)
        except UnsupportedAlgorithm:
            logger.warning(f"unencapsulate: unsupported algorithm '{envelope.alg}'")
            raise

        ciphertext = base64url_decode(envelope.data)
        key = unseal(base64url_decode(envelope.key), prvkey)
        iv  = unseal(base64url_decode(envelope.iv), prvkey)
        try:
            return cipher.decrypt(ciphertext, key, iv)
        except (ValueError, TypeError) as e:
            raise UnsealError(f"{cipher.name} decryption failed: {e}") from e


# Built once at import.
_default_codec = EnvelopeCodec()


def default_codec() -> EnvelopeCodec:
    """Process-wide codec over a frozen, environment-configured registry."""
    return _default_codec


def encapsulate(data: Union[str, bytes], pubkey: PemText, alg: str = None) -> Any:
    return default_codec().encapsulate(data, pubkey, alg)


def unencapsulate(envelope, prvkey: PemText) -> Optional[bytes]:
    return default_codec().unencapsulate(envelope, prvkey)
