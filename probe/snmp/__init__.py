"""
probe/snmp - SNMP access layer for the Riverbed probe.

The checks never talk to net-snmp directly. They go through a Session
(see transport.py for the real one) and the two retrieval helpers:

    from probe.snmp.fetch import fetch_scalars
    from probe.snmp.walker import walk_tables
"""

from __future__ import annotations

from typing import NamedTuple, Protocol, Sequence


class ProbeError(Exception):
    """Base class for failures the probe maps to a status line."""


class TransportError(ProbeError):
    """The request could not be completed (timeout, unreachable agent, tool failure)."""


class ProtocolError(ProbeError):
    """The agent answered, but not with what the request needed."""


class InvalidArgument(ProbeError, ValueError):
    """A caller passed a value the SNMP layer cannot work with."""


class VarBind(NamedTuple):
    oid: str
    # None for noSuchObject / noSuchInstance / endOfMibView
    value: str | None


class Session(Protocol):
    def get(self, oids: Sequence[str]) -> list[VarBind]: ...

    def get_bulk(self, oids: Sequence[str], max_repetitions: int) -> list[VarBind]: ...

    def close(self) -> None: ...


def normalize_oid(oid: str) -> str:
    """Strip whitespace and the leading dot net-snmp prints with -On."""
    return oid.strip().lstrip(".")
