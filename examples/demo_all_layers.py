"""
federated_crypto — Live Demo: All Six Layers
============================================
Run:  python examples/demo_all_layers.py

Walks a key from generation through both PEM flavors, then seals and
opens an envelope, with timing and sizes printed for each step.
"""

import sys, os, time
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from federated_crypto.config                   import setup_logging
from federated_crypto.layers.layer1_der        import DERValue
from federated_crypto.layers.layer2_keyformat  import (
    from_pem, to_pem, to_legacy_rsa_pem, to_compact_key_string,
)
from federated_crypto.layers.layer3_rsa        import new_keypair, seal_token, unseal_token
from federated_crypto.layers.layer5_envelope   import encapsulate, unencapsulate
from federated_crypto.layers.layer6_signatures import rsa_sign, rsa_verify
from federated_crypto.errors                   import UnsupportedAlgorithm

LINE = "═" * 70
MSG  = b"hello federation"

def header(layer, name):
    print(f"\n{LINE}")
    print(f"  Layer {layer} — {name}")
    print(LINE)

def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value != '' else ''}")

setup_logging("WARNING")

# ─────────────────────────────────────────────────────────────────────────────
print(f"\n{LINE}")
print("  federated_crypto — Key Codec + Hybrid Envelope Demo")
print(LINE)
print(f"  Message: {MSG.decode()}\n")

# ── LAYER 3 (first: everything else needs a key) ─────────────────────────────
header(3, "RSA — key pair generation")
t0   = time.perf_counter()
pair = new_keypair(2048)
elapsed = time.perf_counter() - t0
ok("Key size",   "2048 bits")
ok("Generated",  f"{elapsed*1000:.0f} ms")
ok("Private",    pair.private_key_pem.splitlines()[0])
ok("Public",     pair.public_key_pem.splitlines()[0])

# ── LAYER 1 ──────────────────────────────────────────────────────────────────
header(1, "DER — INTEGER sign rule")
for raw in (b"\x7f", b"\x80", b"\x01\x00\x01"):
    ok(f"INTEGER {raw.hex():>6}", DERValue.integer(raw).encode().hex())

# ── LAYER 2 ──────────────────────────────────────────────────────────────────
header(2, "KEY FORMAT — PEM flavors")
m, e   = from_pem(pair.public_key_pem)
pem    = to_pem(m, e)
legacy = to_legacy_rsa_pem(m, e)
ok("PUBLIC KEY line width",     len(pem.splitlines()[1]))
ok("RSA PUBLIC KEY line width", len(legacy.splitlines()[1]))
ok("Round-trip",                from_pem(pem) == from_pem(legacy))
ok("Compact key",               to_compact_key_string(pem)[:40] + "...")

# ── LAYER 5 ──────────────────────────────────────────────────────────────────
for alg in ("aes256cbc", "aes256ctr"):
    header(5, f"ENVELOPE — {alg}")
    t0  = time.perf_counter()
    env = encapsulate(MSG, pair.public_key_pem, alg)
    pt  = unencapsulate(env, pair.private_key_pem)
    elapsed = time.perf_counter() - t0
    ok("Envelope",   f"data={len(env.data)} key={len(env.key)} iv={len(env.iv)} chars")
    ok("Round-trip", f"{elapsed*1000:.2f} ms")
    ok("Decrypted",  pt.decode())

header(5, "ENVELOPE — unregistered algorithm")
ok("encapsulate('rot13') passthrough", encapsulate(MSG, pair.public_key_pem, "rot13") is MSG)
try:
    unencapsulate({"alg": "rot13", "data": "", "key": "", "iv": ""}, pair.private_key_pem)
except UnsupportedAlgorithm as err:
    ok("unencapsulate('rot13')", f"{type(err).__name__}")

# ── LAYER 6 ──────────────────────────────────────────────────────────────────
header(6, "SIGNATURES — RSA PKCS#1 v1.5")
sig = rsa_sign(MSG, pair.private_key_pem, "sha512")
ok("Signature size", f"{len(sig)} bytes")
ok("Verify",         rsa_verify(MSG, sig, legacy, "sha512"))
ok("Tamper",         rsa_verify(b"tampered", sig, legacy, "sha512"))

header(3, "RSA — sealed token")
sealed = seal_token("owt-token", pair.public_key_pem)
ok("Sealed token", sealed[:40] + "...")
ok("Unsealed",     unseal_token(sealed, pair.private_key_pem))

print(f"\n{LINE}\n  Done.\n{LINE}\n")
