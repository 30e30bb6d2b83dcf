"""
Layer 2 — KEY FORMAT CONVERTER
==============================
Moves RSA public keys between raw (modulus, exponent) byte strings and the
two PEM flavors federation peers exchange.

    PUBLIC KEY      SEQUENCE { AlgorithmIdentifier(rsaEncryption),
                               BIT STRING { SEQUENCE { n, e } } }
                    base64 wrapped at 65 columns

    RSA PUBLIC KEY  SEQUENCE { n, e }              (bare PKCS#1)
                    base64 wrapped at 64 columns

The line widths are part of the wire contract. The two flavors are not
interchangeable: each downstream verifier expects one or the other.

from_pem() is a closed round-trip decoder for exactly these two shapes,
not a general X.509 parser. It reads n and e from fixed positions.

Also here: the compact "RSA.<n>.<e>" key string used in lightweight
protocol headers, and the unpadded base64url helpers the envelope uses.
"""

import re
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Tuple, Union

from ..errors import DecodeError, FormatError
from .layer1_der import DERValue, decode, int_to_bytes, bytes_to_int

logger = logging.getLogger(__name__)

# SEQUENCE { OID 1.2.840.113549.1.1.1 (rsaEncryption), NULL }
RSA_ALGORITHM_IDENTIFIER = b"\x30\x0d\x06\x09\x2a\x86\x48\x86\xf7\x0d\x01\x01\x01\x05\x00"

PEM_TITLE         = "PUBLIC KEY"
RSA_PEM_TITLE     = "RSA PUBLIC KEY"
PRIVATE_PEM_TITLE = "RSA PRIVATE KEY"

PEM_LINE_WIDTH     = 65
RSA_PEM_LINE_WIDTH = 64

_BEGIN = re.compile(r"^-----BEGIN ([A-Z0-9 ]+)-----$")
_END   = re.compile(r"^-----END ([A-Z0-9 ]+)-----$")

PemText = Union[str, bytes]


# ── base64url ────────────────────────────────────────────────────────────────

def base64url_encode(data: bytes) -> str:
    """URL-safe base64 with the trailing '=' padding stripped."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(text: Union[str, bytes]) -> bytes:
    """Inverse of base64url_encode; padding is optional."""
    if isinstance(text, bytes):
        try:
            text = text.decode("ascii")
        except UnicodeDecodeError:
            raise FormatError("base64url text must be ASCII.") from None
    text = text.strip().rstrip("=")
    if not re.fullmatch(r"[A-Za-z0-9_-]*", text) or len(text) % 4 == 1:
        raise FormatError("Malformed base64url text.")
    try:
        return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Malformed base64url text: {e}") from e


# ── components ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RSAComponents:
    """Big-endian unsigned modulus and public exponent."""

    modulus:  bytes
    exponent: bytes

    @classmethod
    def from_numbers(cls, n: int, e: int) -> "RSAComponents":
        return cls(int_to_bytes(n), int_to_bytes(e))

    @property
    def n(self) -> int:
        return bytes_to_int(self.modulus)

    @property
    def e(self) -> int:
        return bytes_to_int(self.exponent)

    @property
    def key_size(self) -> int:
        """Modulus length in bits."""
        return self.n.bit_length()

    def __iter__(self):
        return iter((self.modulus, self.exponent))


# ── DER structures ───────────────────────────────────────────────────────────

def pkcs1_encode(modulus: bytes, exponent: bytes) -> bytes:
    """Bare RSAPublicKey: SEQUENCE { INTEGER n, INTEGER e }."""
    return DERValue.sequence([
        DERValue.integer(modulus),
        DERValue.integer(exponent),
    ]).encode()


def pkcs8_encode(modulus: bytes, exponent: bytes) -> bytes:
    """OID-wrapped SubjectPublicKeyInfo around the PKCS#1 structure."""
    return DERValue.sequence([
        decode(RSA_ALGORITHM_IDENTIFIER),
        DERValue.bit_string(pkcs1_encode(modulus, exponent)),
    ]).encode()


# ── PEM wrapping ─────────────────────────────────────────────────────────────

def der_to_pem(der: bytes, title: str = PEM_TITLE,
               width: int = PEM_LINE_WIDTH) -> str:
    body = base64.b64encode(der).decode("ascii")
    lines = [body[i:i + width] for i in range(0, len(body), width)]
    return (f"-----BEGIN {title}-----\n"
            + "\n".join(lines) + "\n"
            + f"-----END {title}-----\n")


def der_to_rsa(der: bytes) -> str:
    """Legacy RSA PUBLIC KEY flavor, 64 columns."""
    return der_to_pem(der, RSA_PEM_TITLE, RSA_PEM_LINE_WIDTH)


def der_to_private_pem(der: bytes) -> str:
    """PKCS#1 RSAPrivateKey DER -> RSA PRIVATE KEY PEM, 65 columns."""
    return der_to_pem(der, PRIVATE_PEM_TITLE)


def pem_to_der(pem: PemText) -> Tuple[str, bytes]:
    """
    Strip header and footer, base64-decode the body.
    Returns (title, der). Line width is not checked.
    """
    if isinstance(pem, bytes):
        try:
            pem = pem.decode("ascii")
        except UnicodeDecodeError:
            raise FormatError("PEM document must be ASCII.") from None
    if not isinstance(pem, str):
        raise FormatError(f"PEM must be str or bytes, not {type(pem).__name__}.")

    lines = [line.strip() for line in pem.strip().splitlines()]
    if len(lines) < 3:
        raise FormatError("PEM document needs a header, a body and a footer.")

    begin = _BEGIN.match(lines[0])
    end   = _END.match(lines[-1])
    if not begin or not end:
        raise FormatError("Missing PEM header or footer line.")
    if begin.group(1) != end.group(1):
        raise FormatError(
            f"PEM header '{begin.group(1)}' does not match footer '{end.group(1)}'."
        )

    body = lines[1:-1]
    if any(_BEGIN.match(line) or _END.match(line) for line in body):
        raise FormatError("Extra PEM header lines inside the body.")
    try:
        der = base64.b64decode("".join(body), validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"PEM body is not valid base64: {e}") from e
    if not der:
        raise FormatError("PEM body is empty.")
    return begin.group(1), der


# ── conversions ──────────────────────────────────────────────────────────────

def to_pem(modulus: bytes, exponent: bytes) -> str:
    """Raw components -> PUBLIC KEY PEM (65 columns)."""
    return der_to_pem(pkcs8_encode(modulus, exponent))


def to_legacy_rsa_pem(modulus: bytes, exponent: bytes) -> str:
    """Raw components -> RSA PUBLIC KEY PEM (64 columns)."""
    return der_to_rsa(pkcs1_encode(modulus, exponent))


def _components(key_sequence: DERValue) -> RSAComponents:
    if not key_sequence.is_sequence or len(key_sequence) != 2:
        raise DecodeError("RSAPublicKey must be a SEQUENCE of two INTEGERs.")
    return RSAComponents(key_sequence[0].unsigned(), key_sequence[1].unsigned())


def from_pem(pem: PemText) -> RSAComponents:
    """
    PUBLIC KEY or RSA PUBLIC KEY PEM -> RSAComponents.

    Wrapped form: n and e live at outer[1] -> BIT STRING -> SEQUENCE[0..1].
    Bare form:    n and e are outer[0..1].
    """
    title, der = pem_to_der(pem)
    if title not in (PEM_TITLE, RSA_PEM_TITLE):
        raise FormatError(f"Not an RSA public key PEM: '{title}'.")

    outer = decode(der)
    if not outer.is_sequence:
        raise DecodeError(f"Expected an outer SEQUENCE, found {outer.tag_name}.")

    if title == PEM_TITLE:
        if outer[0].encode() != RSA_ALGORITHM_IDENTIFIER:
            raise FormatError("PUBLIC KEY is not an rsaEncryption key.")
        components = _components(decode(outer[1].bits()))
    else:
        components = _components(outer)

    logger.debug(f"PEM: parsed {title} with {components.key_size}-bit modulus")
    return components


def rsa_to_pem(key: PemText) -> str:
    """RSA PUBLIC KEY flavor -> PUBLIC KEY flavor."""
    title, _ = pem_to_der(key)
    if title != RSA_PEM_TITLE:
        raise FormatError(f"Expected an {RSA_PEM_TITLE} PEM, found '{title}'.")
    return to_pem(*from_pem(key))


def pem_to_rsa(key: PemText) -> str:
    """PUBLIC KEY flavor -> RSA PUBLIC KEY flavor."""
    title, _ = pem_to_der(key)
    if title != PEM_TITLE:
        raise FormatError(f"Expected a {PEM_TITLE} PEM, found '{title}'.")
    return to_legacy_rsa_pem(*from_pem(key))


def to_compact_key_string(pem: PemText) -> str:
    """PEM -> 'RSA.<base64url n>.<base64url e>' for protocol headers."""
    components = from_pem(pem)
    return ".".join((
        "RSA",
        base64url_encode(components.modulus),
        base64url_encode(components.exponent),
    ))
