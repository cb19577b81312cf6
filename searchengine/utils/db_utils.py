"""Helpers for database connection strings.

Deployments hand us SQLAlchemy-style URLs (``postgresql+psycopg2://``,
``mysql+pymysql://``) while Tortoise ORM wants its own schemes
(``asyncpg://``, ``mysql://``, ``sqlite://``).
"""

from __future__ import annotations


def strip_driver(url: str) -> str:
    """Drop the ``+driver`` part of a ``dialect+driver://`` URL."""

    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    return scheme.split("+", 1)[0] + "://" + rest


def to_tortoise_url(url: str) -> str:
    """Convert a database URL to the scheme Tortoise expects.

    PostgreSQL URLs are routed to the ``asyncpg`` backend; MySQL and SQLite
    URLs only lose their driver suffix.
    """

    url = strip_driver(url)
    if url.startswith("postgresql://"):
        return "asyncpg://" + url[len("postgresql://") :]
    if url.startswith("postgres://"):
        return "asyncpg://" + url[len("postgres://") :]
    return url
