"""Migration descriptors and directory discovery.

A migration file is named ``V<version>__<description>.sql``; the name alone
gives its identity, the content gives its checksum. Discovery turns a
directory listing into descriptors sorted by version, ignoring everything
that is not named like a migration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from strata.core.errors import MalformedFilenameError, MalformedMigrationError, MigrationDirectoryError
from strata.core.hashing import ChecksumPolicy, compute_checksum
from strata.logging import get_logger

logger = get_logger(__name__)

FILENAME_PATTERN = re.compile(r"V([0-9]+)__([A-Za-z0-9_]+)\.sql")


def parse_filename(filename: str) -> tuple[int, str]:
    """
    Split a migration file name into ``(version, description)``.

    >>> parse_filename("V2__latlong.sql")
    (2, 'latlong')

    Raises:
        MalformedFilenameError: the base name does not match
            ``V<digits>__<word characters>.sql`` or the version is 0.
    """
    name = Path(filename).name
    match = FILENAME_PATTERN.fullmatch(name)
    if match is None:
        raise MalformedFilenameError(name)
    version = int(match.group(1))
    if version == 0:
        raise MalformedFilenameError(name, f"Migration file name {name!r} has version 0; versions start at 1")
    return version, match.group(2)


def is_migration_filename(filename: str) -> bool:
    """Whether ``filename`` would be picked up by discovery."""
    try:
        parse_filename(filename)
    except MalformedFilenameError:
        return False
    return True


@dataclass(eq=False)
class Migration:
    """
    A migration script found on disk.

    Two migrations compare equal when version, description, script name and
    checksum match; the body and path do not take part. A ``Migration``
    also compares equal to the ledger entry recording it.
    """

    version: int
    description: str
    script: str
    checksum: int | str
    body: str = field(default="", repr=False)
    path: Path | None = None

    @classmethod
    def from_file(cls, path: Path | str, policy: ChecksumPolicy | str = ChecksumPolicy.CRC32) -> Migration:
        """
        Load a migration file: parse its name, read it, fingerprint it.

        The body is decoded from the raw bytes so line endings survive into
        the checksum.

        Raises:
            MalformedMigrationError: the file is not valid UTF-8.
        """
        path = Path(path)
        version, description = parse_filename(path.name)
        try:
            body = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMigrationError(path.name, cause=e) from e
        return cls(
            version=version,
            description=description,
            script=path.name,
            checksum=compute_checksum(body, policy),
            body=body,
            path=path,
        )

    @property
    def identity(self) -> tuple[int, str, str, int | str]:
        return (self.version, self.description, self.script, self.checksum)

    def __eq__(self, other: Any) -> bool:
        if not hasattr(other, "identity"):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)


def discover_migrations(
    directory: Path | str,
    policy: ChecksumPolicy | str = ChecksumPolicy.CRC32,
) -> list[Migration]:
    """
    Load every migration file in ``directory``, sorted by version.

    Files not named ``V<digits>__<description>.sql`` are skipped. Ties on
    version are ordered by script name so duplicate reporting is stable.

    Raises:
        MigrationDirectoryError: ``directory`` does not exist or is a file.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise MigrationDirectoryError(str(directory))

    migrations = []
    for path in directory.iterdir():
        if not path.is_file():
            continue
        if not is_migration_filename(path.name):
            logger.debug("migration.ignored", file=path.name)
            continue
        migrations.append(Migration.from_file(path, policy))

    migrations.sort(key=lambda m: (m.version, m.script))
    logger.debug("migration.discovered", directory=str(directory), count=len(migrations))
    return migrations


__all__ = [
    "FILENAME_PATTERN",
    "Migration",
    "discover_migrations",
    "is_migration_filename",
    "parse_filename",
]
