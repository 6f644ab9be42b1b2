"""
probe/health/device.py - Appliance health from the STEELHEAD-MIB scalars.

One GET for model, health text, systemHealth enum and the aggregate
bandwidth counters. Anything other than systemHealth=healthy(10000) is an
ERROR; the counters always go into the perfdata.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from probe.health import CheckResult, Severity
from probe.snmp import ProtocolError
from probe.snmp.fetch import fetch_scalars

if TYPE_CHECKING:
    from config.settings import Settings
    from probe.snmp import Session

logger = logging.getLogger(__name__)

NAME = "device health"

HEALTHY = 10000

# STEELHEAD-MIB, enterprises.17163.1.1
FIELDS = {
    "model": "1.3.6.1.4.1.17163.1.1.1.1.0",
    "health": "1.3.6.1.4.1.17163.1.1.2.2.0",
    "system_health": "1.3.6.1.4.1.17163.1.1.2.7.0",
    "in_lan": "1.3.6.1.4.1.17163.1.1.5.3.1.1.0",
    "in_wan": "1.3.6.1.4.1.17163.1.1.5.3.1.2.0",
    "out_lan": "1.3.6.1.4.1.17163.1.1.5.3.1.3.0",
    "out_wan": "1.3.6.1.4.1.17163.1.1.5.3.1.4.0",
}


def run_check(session: Session, cfg: Settings) -> CheckResult:  # noqa: ARG001
    values = fetch_scalars(session, FIELDS)

    try:
        system_health = int(values["system_health"])
    except ValueError as exc:
        raise ProtocolError(
            f"systemHealth is not an integer: '{values['system_health']}'"
        ) from exc

    severity = Severity.OK if system_health == HEALTHY else Severity.ERROR
    logger.info("systemHealth=%s (%s) -> %s", system_health, values["health"], severity.name)

    return CheckResult(
        NAME,
        severity,
        message=f"Riverbed {values['model']} is {values['health']}",
        metrics=format_metrics(values),
    )


def format_metrics(values: Mapping[str, str]) -> str:
    """HEALTH=..;OUTLAN=..;OUTWAN=..;INLAN=..;INWAN=..; in that fixed order."""
    return (
        f"HEALTH={values['health']};"
        f"OUTLAN={values['out_lan']};"
        f"OUTWAN={values['out_wan']};"
        f"INLAN={values['in_lan']};"
        f"INWAN={values['in_wan']};"
    )
