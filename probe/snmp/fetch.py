"""
probe/snmp/fetch.py - Fetch a fixed set of named scalars in one GET.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from probe.snmp import ProtocolError, Session, normalize_oid

logger = logging.getLogger(__name__)


def fetch_scalars(session: Session, fields: Mapping[str, str]) -> Mapping[str, str]:
    """Return {field name: value} for every entry of `fields` ({field name: OID}).

    Raises TransportError if the request fails and ProtocolError if the agent
    leaves any requested field out or answers it with an SNMP exception value.
    """
    if not fields:
        return MappingProxyType({})

    by_oid: dict[str, list[str]] = {}
    for name, oid in fields.items():
        by_oid.setdefault(normalize_oid(oid), []).append(name)
    bindings = session.get(list(by_oid))

    values: dict[str, str] = {}
    for binding in bindings:
        names = by_oid.get(normalize_oid(binding.oid))
        if names is None:
            logger.debug("ignoring unrequested binding %s", binding.oid)
            continue
        if binding.value is None:
            raise ProtocolError(f"agent has no value for {names[0]} ({binding.oid})")
        for name in names:
            values[name] = binding.value

    missing = sorted(set(fields) - set(values))
    if missing:
        raise ProtocolError(f"response is missing field(s): {', '.join(missing)}")
    return MappingProxyType(values)
