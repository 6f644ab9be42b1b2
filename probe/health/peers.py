"""
probe/health/peers.py - Connected optimization peers.

Walks the peer table (address + hostname columns) until every required peer
has shown up. The appliance may list a peer by address while the operator
asked for a hostname, or the other way round, and some releases report the
address with its octets reversed, so each observed address is also matched
in reverse-octet form.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterable, Mapping, Sequence

from probe.health import CheckResult, Severity
from probe.snmp.walker import walk_tables

if TYPE_CHECKING:
    from config.settings import Settings
    from probe.snmp import Session

logger = logging.getLogger(__name__)

NAME = "peers"

# STEELHEAD-MIB peerTable columns
PEER_TABLES = {
    "address": "1.3.6.1.4.1.17163.1.1.6.1.1.4",
    "hostname": "1.3.6.1.4.1.17163.1.1.6.1.1.2",
}

_DOTTED_QUAD = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")


def reverse_octets(address: str) -> str | None:
    """'10.1.2.3' -> '3.2.1.10'. None for anything that is not a dotted quad."""
    match = _DOTTED_QUAD.match(address.strip())
    if match is None:
        return None
    return ".".join(reversed(match.groups()))


def observed_identities(tables: Mapping[str, Sequence[str]]) -> set[str]:
    identities: set[str] = set()
    for hostname in tables.get("hostname", ()):
        identities.add(hostname.strip().lower())
    for address in tables.get("address", ()):
        identities.add(address.strip().lower())
        reversed_form = reverse_octets(address)
        if reversed_form is not None:
            identities.add(reversed_form)
    return identities


def _label(peers: Iterable[str]) -> str:
    names = sorted(peers)
    return f"{'peers' if len(names) > 1 else 'peer'} {', '.join(names)}"


def run_check(session: Session, cfg: Settings) -> CheckResult:
    required = cfg.required_peers
    if not required:
        return CheckResult(NAME, Severity.OK)

    def all_seen(tables: Mapping[str, Sequence[str]]) -> bool:
        return required <= observed_identities(tables)

    tables = walk_tables(session, PEER_TABLES, stop=all_seen, page_size=cfg.WALK_PAGE_SIZE)
    missing = required - observed_identities(tables)
    logger.info(
        "peer table: %d address(es), %d hostname(s), missing %s",
        len(tables["address"]),
        len(tables["hostname"]),
        sorted(missing) or "none",
    )

    if missing:
        return CheckResult(NAME, Severity.ERROR, message=f"{_label(missing)} MISSING")
    return CheckResult(NAME, Severity.OK, message=f"{_label(required)} connected")
