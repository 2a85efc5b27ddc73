"""
Quarry DB — lazy server-version probe.

Version-gated capabilities (SQLite 3.35 RETURNING, MariaDB 10.5 RETURNING,
PostgreSQL 18 OLD./NEW.) need the server version, but asking for it on
every statement would double the round-trips. ``ServerProbe`` asks once per
database and memoises the answer. Concurrent first callers share one
in-flight future, so only one probe query is ever issued.

A failed probe is not memoised: the callers waiting on it receive a
``ServerInfo`` with an unknown version and the next call probes again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("quarry.db")

__all__ = ["ServerInfo", "ServerProbe"]


@dataclass(frozen=True)
class ServerInfo:
    """Refined dialect name plus raw version banner (``None`` if unknown)."""

    dialect: str
    version: Optional[str] = None

    @property
    def known(self) -> bool:
        return self.version is not None


class ServerProbe:
    """
    Memoising wrapper around a version query.

    Args:
        fetch_version: coroutine function returning the raw banner.
        resolve_dialect: maps the banner to a dialect name (MySQL URLs may
            be served by MariaDB).
        fallback_dialect: dialect reported when the probe fails.
    """

    __slots__ = ("_fetch_version", "_resolve_dialect", "_fallback", "_info", "_pending")

    def __init__(
        self,
        fetch_version: Callable[[], Awaitable[str]],
        resolve_dialect: Callable[[str], str],
        fallback_dialect: str,
    ):
        self._fetch_version = fetch_version
        self._resolve_dialect = resolve_dialect
        self._fallback = fallback_dialect
        self._info: Optional[ServerInfo] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def cached(self) -> Optional[ServerInfo]:
        return self._info

    def reset(self) -> None:
        """Forget the memoised answer (e.g. after reconnecting elsewhere)."""
        self._info = None
        self._pending = None

    async def get(self) -> ServerInfo:
        if self._info is not None:
            return self._info
        if self._pending is not None:
            return await asyncio.shield(self._pending)

        future = asyncio.get_running_loop().create_future()
        self._pending = future
        unknown = ServerInfo(self._fallback, None)
        try:
            version = await self._fetch_version()
            info = ServerInfo(self._resolve_dialect(version), version)
        except asyncio.CancelledError:
            self._pending = None
            future.set_result(unknown)
            raise
        except Exception as exc:
            logger.warning(f"Server version probe failed ({self._fallback}): {exc}")
            self._pending = None
            future.set_result(unknown)
            return unknown

        self._info = info
        self._pending = None
        future.set_result(info)
        logger.debug(f"Server version probed: {info.dialect} {info.version}")
        return info
