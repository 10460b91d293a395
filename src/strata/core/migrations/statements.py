"""Splitting migration scripts into statements."""

from __future__ import annotations


def strip_comment_lines(body: str) -> str:
    """Drop lines whose first non-blank characters are ``--``."""
    return "\n".join(line for line in body.splitlines() if not line.lstrip().startswith("--"))


def split_statements(body: str, delimiter: str = ";") -> list[str]:
    """
    Split a script into the statements to execute, in order.

    Full-line comments are removed first, then the text is split on
    ``delimiter``; pieces that are empty after trimming are dropped. The
    split is purely textual: a delimiter inside a string literal or a
    trailing comment also splits.

    >>> split_statements("-- setup\\nCREATE TABLE a (id INT);\\n\\n;INSERT INTO a VALUES (1);")
    ['CREATE TABLE a (id INT)', 'INSERT INTO a VALUES (1)']
    """
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    pieces = strip_comment_lines(body).split(delimiter)
    return [piece.strip() for piece in pieces if piece.strip()]


def whole_script(body: str) -> list[str]:
    """The script as a single statement, or nothing if it is only comments."""
    stripped = body.strip()
    if not strip_comment_lines(stripped).strip():
        return []
    return [stripped]


__all__ = [
    "split_statements",
    "strip_comment_lines",
    "whole_script",
]
