"""
Layer 4 — CIPHER REGISTRY
=========================
Maps an algorithm name to a (encrypt, decrypt) pair of symmetric functions,
each with signature fn(data, key, iv) -> bytes.

Built-in entries:
    aes256cbc   AES-256-CBC, PKCS#7 padding.
                Short keys / IVs are zero-padded to 32 / 16 bytes.
    aes256ctr   AES-256-CTR, no padding.
                Keys / IVs are truncated to 32 / 16 bytes, then zero-padded.

Names the registry does not know fall through to the extension hooks on
the encrypt side only. Hooks run in registration order, the first that
returns a result wins, and if none does the plaintext comes back
unchanged. Nothing is silently encrypted by a default.

The registry is populated at startup and then frozen. After freeze() it
is read-only and safe to share across threads.

Dependencies: cryptography >= 41.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..errors import UnsupportedAlgorithm

logger = logging.getLogger(__name__)

AES_KEY_SIZE = 32   # 256-bit key
AES_IV_SIZE  = 16   # 128-bit block / IV

SymmetricFn = Callable[[bytes, bytes, bytes], bytes]


def _fit(value: bytes, size: int, truncate: bool = False) -> bytes:
    if truncate:
        value = value[:size]
    return value.ljust(size, b"\0")


# ── built-in ciphers ─────────────────────────────────────────────────────────

def aes256cbc_encrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    padder = padding.PKCS7(128).padder()
    padded = padder.update(data) + padder.finalize()
    enc = Cipher(algorithms.AES(_fit(key, AES_KEY_SIZE)),
                 modes.CBC(_fit(iv, AES_IV_SIZE))).encryptor()
    return enc.update(padded) + enc.finalize()


def aes256cbc_decrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    """Raises ValueError on bad length or bad padding."""
    dec = Cipher(algorithms.AES(_fit(key, AES_KEY_SIZE)),
                 modes.CBC(_fit(iv, AES_IV_SIZE))).decryptor()
    padded = dec.update(data) + dec.finalize()
    unpadder = padding.PKCS7(128).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def aes256ctr_encrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    enc = Cipher(algorithms.AES(_fit(key, AES_KEY_SIZE, truncate=True)),
                 modes.CTR(_fit(iv, AES_IV_SIZE, truncate=True))).encryptor()
    return enc.update(data) + enc.finalize()


def aes256ctr_decrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    dec = Cipher(algorithms.AES(_fit(key, AES_KEY_SIZE, truncate=True)),
                 modes.CTR(_fit(iv, AES_IV_SIZE, truncate=True))).decryptor()
    return dec.update(data) + dec.finalize()


# ── registry entries ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CipherSpec:
    """A registered algorithm and the key material it wants."""

    name:     str
    encrypt:  SymmetricFn
    decrypt:  SymmetricFn
    key_size: int = AES_KEY_SIZE
    iv_size:  int = AES_IV_SIZE


class EncapsulationHook:
    """
    Extension point for algorithms this node does not implement.
    Return an encapsulation result to claim the call, or None to pass.
    """

    def try_encrypt(self, alg: str, data: Any, pubkey: Any) -> Optional[Any]:
        raise NotImplementedError


class CallbackHook(EncapsulationHook):
    """
    Adapts a plugin callback of the form fn(x) where
    x = {"data", "pubkey", "alg", "result"} and "result" starts out as data.
    A callback that leaves "result" alone declines the call.
    """

    def __init__(self, fn: Callable[[Dict[str, Any]], None]):
        self._fn = fn

    def try_encrypt(self, alg, data, pubkey):
        x = {"data": data, "pubkey": pubkey, "alg": alg, "result": data}
        self._fn(x)
        if x["result"] is data:
            return None
        return x["result"]

    def __repr__(self):
        return f"CallbackHook({getattr(self._fn, '__name__', self._fn)!r})"


class CipherRegistry:
    """Name -> CipherSpec table plus the ordered encrypt-side hook list."""

    def __init__(self):
        self._ciphers: Dict[str, CipherSpec] = {}
        self._hooks:   List[EncapsulationHook] = []
        self._frozen   = False

    def _check_mutable(self):
        if self._frozen:
            raise RuntimeError("Cipher registry is frozen.")

    def register(self, name: str, encrypt: SymmetricFn, decrypt: SymmetricFn,
                 key_size: int = AES_KEY_SIZE,
                 iv_size: int = AES_IV_SIZE) -> CipherSpec:
        self._check_mutable()
        if not name:
            raise ValueError("Cipher name must not be empty.")
        cipher = CipherSpec(name.lower(), encrypt, decrypt, key_size, iv_size)
        self._ciphers[cipher.name] = cipher
        logger.info(f"Cipher registered: {cipher.name} (key={key_size}B iv={iv_size}B)")
        return cipher

    def add_hook(self, hook) -> EncapsulationHook:
        """Accepts an EncapsulationHook or a plain fn(x) plugin callback."""
        self._check_mutable()
        if not hasattr(hook, "try_encrypt"):
            if not callable(hook):
                raise TypeError("Hook must implement try_encrypt() or be callable.")
            hook = CallbackHook(hook)
        self._hooks.append(hook)
        logger.info(f"Encapsulation hook added: {hook!r}")
        return hook

    def freeze(self) -> "CipherRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, name: str) -> Optional[CipherSpec]:
        return self._ciphers.get((name or "").lower())

    def require(self, name: str) -> CipherSpec:
        cipher = self.resolve(name)
        if cipher is None:
            raise UnsupportedAlgorithm(f"Algorithm '{name}' is not registered.")
        return cipher

    def names(self) -> List[str]:
        return sorted(self._ciphers)

    def __contains__(self, name) -> bool:
        return self.resolve(name) is not None

    def encapsulate_with_hooks(self, data: Any, pubkey: Any, alg: str) -> Any:
        """First hook result wins; otherwise data passes through untouched."""
        for hook in self._hooks:
            result = hook.try_encrypt(alg, data, pubkey)
            if result is not None:
                logger.debug(f"Hook {hook!r} handled '{alg}'")
                return result
        logger.warning(f"No cipher or hook for '{alg}'; data returned unencrypted")
        return data


def default_registry() -> CipherRegistry:
    """Fresh, unfrozen registry holding the built-in AES ciphers."""
    registry = CipherRegistry()
    registry.register("aes256cbc", aes256cbc_encrypt, aes256cbc_decrypt)
    registry.register("aes256ctr", aes256ctr_encrypt, aes256ctr_decrypt)
    return registry
