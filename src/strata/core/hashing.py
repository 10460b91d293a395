"""
Deterministic migration checksums.

A checksum is the fingerprint the ledger stores for every applied migration.
On each run the file on disk is fingerprinted again and compared with the
recorded value: equal means "already applied, unchanged", different means
the file was edited after it was applied.

Manifesto:
    Applied migrations are immutable. The checksum is what makes that
    enforceable:
    - **Deterministic:** Same text always produces the same checksum
    - **Line-sensitive:** Editing any line changes the checksum
    - **Policy-stable:** One ledger is always read and written with one policy

Architecture:
    ::

        ChecksumPolicy.CRC32 (default, Flyway-compatible)
        ┌────────────────────────────────────────────────────────────┐
        │ crc = 0                                                    │
        │ for line in lines(body):          # \\r\\n, \\r, \\n stripped  │
        │     crc = crc32(line, crc)        # running CRC as seed    │
        │ checksum = signed32(crc)          # stored as INTEGER      │
        └────────────────────────────────────────────────────────────┘

        ChecksumPolicy.SHA256
        ┌────────────────────────────────────────────────────────────┐
        │ checksum = sha256(body).hexdigest()   # stored as VARCHAR  │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> compute_checksum("SELECT 1;") == compute_checksum("SELECT 1;\\n")
    True
    >>> compute_checksum("") == 0
    True
    >>> len(compute_checksum("SELECT 1;", ChecksumPolicy.SHA256))
    64

Guardrails:
    ❌ DON'T: Switch policies on a ledger that already has rows
    ✅ DO: Pick a policy once per ledger; mixing shows up as checksum mismatches

Tags:
    hashing, checksum, crc32, sha256, flyway, strata

Doc-Types:
    - API Reference
"""

import hashlib
import re
import zlib
from enum import Enum

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_BOM = "\ufeff"


class ChecksumPolicy(str, Enum):
    """How migration bodies are fingerprinted."""

    CRC32 = "crc32"
    SHA256 = "sha256"


def crc32_checksum(body: str) -> int:
    """
    Line-accumulated CRC-32, reinterpreted as a signed 32-bit integer.

    Matches the checksum Flyway writes into ``flyway_schema_history`` for SQL
    migrations, so ledgers can be shared with Flyway.

    Args:
        body: Script text

    Returns:
        Signed 32-bit checksum
    """
    if body.startswith(_BOM):
        body = body[1:]
    crc = 0
    for line in _LINE_BREAK.split(body):
        crc = zlib.crc32(line.encode("utf-8"), crc)
    if crc >= 2**31:
        crc -= 2**32
    return crc


def sha256_checksum(body: str) -> str:
    """Hex SHA-256 of the whole script."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def compute_checksum(body: str, policy: ChecksumPolicy | str = ChecksumPolicy.CRC32) -> int | str:
    """
    Compute the checksum of a migration body under ``policy``.

    Args:
        body: Script text
        policy: ``ChecksumPolicy`` or its string value

    Returns:
        ``int`` for CRC32, ``str`` for SHA256
    """
    policy = ChecksumPolicy(policy)
    if policy is ChecksumPolicy.SHA256:
        return sha256_checksum(body)
    return crc32_checksum(body)


__all__ = [
    "ChecksumPolicy",
    "compute_checksum",
    "crc32_checksum",
    "sha256_checksum",
]
