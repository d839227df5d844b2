"""rosauth MAC generation.

rosbridge servers running rosauth accept an ``auth`` op whose ``mac`` is
the SHA-512 hex digest of a shared secret followed by the request fields.
The trusted side computes it; the client just forwards it with
``Connection.authenticate``.
"""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes


def compute_mac(
    secret: str,
    client: str,
    dest: str,
    rand: str,
    t: int | float,
    level: str,
    end: int | float,
) -> str:
    digest = hashes.Hash(hashes.SHA512())
    for part in (secret, client, dest, rand, str(t), level, str(end)):
        digest.update(part.encode("utf-8"))
    return digest.finalize().hex()
