"""Host resolution over a priority-ordered chain of sources."""

from __future__ import annotations

from typing import Iterable

from .hosts import HostCategory, HostSource, ResolvedHosts, SourceAnswer


def _first_answer(answers: Iterable[tuple[str, str]]) -> tuple[str, str]:
    for host, name in answers:
        if host:
            return host, name
    return "", ""


def _primary_and_fallback(answers: Iterable[str]) -> tuple[str, str]:
    primary = ""
    for host in answers:
        if not host:
            continue
        elif not primary:
            primary = host
        elif host != primary:
            return primary, host
    return primary, ""


class Resolver:
    """Resolve server and editor hosts from a chain of sources.

    Sources are sorted once at construction by ascending priority.
    The sort is stable, so sources sharing a priority keep the order
    in which they were given.  A resolver holds no state besides the
    sorted chain: every call re-evaluates each source.
    """

    def __init__(self, sources: Iterable[HostSource]) -> None:
        self._sources: tuple[HostSource, ...] = tuple(
            sorted(sources, key=lambda s: s.priority())
        )

    @property
    def sources(self) -> tuple[HostSource, ...]:
        """Sources in the order they are consulted."""
        return self._sources

    def resolve_all(self) -> ResolvedHosts:
        """Resolve both categories."""
        server, fallback = self.resolve_server_connection()
        editor_target, source_name = self.resolve_editor_target()
        return ResolvedHosts(
            server=server,
            server_fallback=fallback,
            editor_target=editor_target,
            source_name=source_name,
        )

    def resolve_editor_target(self) -> tuple[str, str]:
        """Return the first editor target found and its source name."""
        return _first_answer(
            (src.resolve(HostCategory.EDITOR_TARGET), src.identifier())
            for src in self._sources
        )

    def resolve_server_connection(self) -> tuple[str, str]:
        """Return the primary server host and a distinct fallback.

        Unlike the editor target this does not stop at the first
        answer: later sources are still consulted to find a second,
        different value.  Duplicates of the primary are skipped.
        """
        return _primary_and_fallback(
            src.resolve(HostCategory.SERVER_CONNECTION)
            for src in self._sources
        )

    def trace(self) -> tuple[ResolvedHosts, list[SourceAnswer]]:
        """Ask every source once per category and resolve from that.

        No short-circuit applies, so each source's answer is reported
        even when a higher-priority source already decided.  The
        resolution is the same as :meth:`resolve_all` would return.
        """
        answers = [
            SourceAnswer(
                name=src.identifier(),
                priority=src.priority(),
                server_connection=src.resolve(HostCategory.SERVER_CONNECTION),
                editor_target=src.resolve(HostCategory.EDITOR_TARGET),
            )
            for src in self._sources
        ]
        server, fallback = _primary_and_fallback(
            a.server_connection for a in answers
        )
        editor_target, source_name = _first_answer(
            (a.editor_target, a.name) for a in answers
        )
        resolved = ResolvedHosts(
            server=server,
            server_fallback=fallback,
            editor_target=editor_target,
            source_name=source_name,
        )
        return resolved, answers
