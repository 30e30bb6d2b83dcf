"""
Configuration
=============
Environment-driven settings (a local .env file is honoured), plus the
CryptoConfig object that is handed to EnvelopeCodec and KeyPairGenerator
instead of relying on ambient globals.

    FEDCRYPTO_LOG_LEVEL            INFO
    FEDCRYPTO_RSA_KEY_BITS         4096
    FEDCRYPTO_RSA_PUBLIC_EXPONENT  65537
    FEDCRYPTO_DEFAULT_ALG          aes256cbc
    FEDCRYPTO_KEYGEN_BACKEND       cryptography
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict

from dotenv import load_dotenv

from .layers.layer4_ciphers import CipherRegistry, default_registry

logger = logging.getLogger(__name__)

load_dotenv()

LOG_LEVEL           = os.getenv("FEDCRYPTO_LOG_LEVEL", "INFO").upper()
RSA_KEY_BITS        = int(os.getenv("FEDCRYPTO_RSA_KEY_BITS", "4096"))
RSA_PUBLIC_EXPONENT = int(os.getenv("FEDCRYPTO_RSA_PUBLIC_EXPONENT", "65537"))
DEFAULT_ALG         = os.getenv("FEDCRYPTO_DEFAULT_ALG", "aes256cbc").lower()
KEYGEN_BACKEND      = os.getenv("FEDCRYPTO_KEYGEN_BACKEND", "cryptography")


def setup_logging(level: str = None) -> None:
    """Configure root logging for scripts. Library code never calls this."""
    numeric_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@dataclass
class CryptoConfig:
    """
    Everything the envelope and key layers need from the outside world.

    The registry and the extra key generation backends are filled in at
    startup; freeze() closes both once plugins have registered.
    """

    registry:        CipherRegistry = field(default_factory=default_registry)
    default_alg:     str = DEFAULT_ALG
    key_bits:        int = RSA_KEY_BITS
    public_exponent: int = RSA_PUBLIC_EXPONENT
    keygen_backend:  str = KEYGEN_BACKEND
    keygen_backends: Dict[str, Callable] = field(default_factory=dict)

    def add_keygen_backend(self, name: str, backend: Callable) -> None:
        """Make an alternate key generator selectable by name."""
        if self.registry.frozen:
            raise RuntimeError("Configuration is frozen.")
        self.keygen_backends[name] = backend
        logger.info(f"Key generation backend registered: {name}")

    def freeze(self) -> "CryptoConfig":
        self.registry.freeze()
        return self

    @classmethod
    def from_env(cls) -> "CryptoConfig":
        return cls().freeze()
