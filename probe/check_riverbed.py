#!/usr/bin/env python3
"""
probe/check_riverbed.py - Nagios-style SNMP probe for Riverbed SteelHead appliances.

Checks run in a fixed order and the run stops at the first one that is not
OK, so a sick appliance is not also asked to walk its peer table:

  1. Device health   (systemHealth == healthy, bandwidth counters as perfdata)
  2. Peers           (only with -p: every listed peer is connected)

Output is one line, then the process exits with the plugin state:

    OK: Riverbed SH1050 is Healthy, peers 10.1.2.3, riverbed-magadan connected|RIVERBED:HEALTH=Healthy;OUTLAN=..;OUTWAN=..;INLAN=..;INWAN=..;

Usage:
    check_riverbed -H 10.0.0.1                       # console script
    python -m probe.check_riverbed -H 10.0.0.1 -c private -p sh-paris,sh-lyon

Importable (used by unit tests):
    from probe.check_riverbed import run_checks, main
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Sequence

from pydantic import ValidationError

from config.settings import Settings, load_settings
from probe.health import CheckResult, Severity
from probe.health import device as health_device
from probe.health import peers as health_peers
from probe.snmp import InvalidArgument, ProtocolError, Session, TransportError
from probe.snmp.transport import open_session

logger = logging.getLogger(__name__)

PERFDATA_TAG = "RIVERBED:"

Check = Callable[[Session, Settings], CheckResult]

CHECKS: tuple[Check, ...] = (
    health_device.run_check,
    health_peers.run_check,
)


class MissingParameter(Exception):
    """A required flag is absent or the command line could not be parsed."""


@dataclass(frozen=True)
class Report:
    severity: Severity
    message: str
    perfdata: str | None = None

    def __str__(self) -> str:
        line = f"{self.severity.name}: {self.message}"
        if self.perfdata is not None:
            line += f"|{self.perfdata}"
        return line


def run_checks(session: Session, cfg: Settings, checks: Sequence[Check] = CHECKS) -> Report:
    """Run `checks` in order, stopping after the first result that is not OK."""
    severity = Severity.OK
    messages: list[str] = []
    metrics: list[str] = []

    for check in checks:
        result = check(session, cfg)
        logger.info("%s", result)
        severity = result.severity
        if result.message:
            messages.append(result.message)
        if result.metrics:
            metrics.append(result.metrics)
        if not result.passed:
            break

    return Report(severity, ", ".join(messages), PERFDATA_TAG + ", ".join(metrics))


class _PluginArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise MissingParameter(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _PluginArgumentParser(
        prog="check_riverbed",
        description="Check Riverbed SteelHead health and peer connectivity over SNMP v2c.",
    )
    parser.add_argument("-H", dest="host", metavar="<host>", help="Appliance address (required).")
    parser.add_argument(
        "-c", dest="community", metavar="<community>", help='SNMP community (default "public").'
    )
    parser.add_argument(
        "-p",
        dest="peers",
        metavar="<peer1,peer2,...>",
        help="Peers that must be connected, comma-separated, case-insensitive.",
    )
    parser.add_argument("-t", dest="timeout", type=int, metavar="<seconds>", help="SNMP timeout.")
    parser.add_argument(
        "-P", dest="page_size", type=int, metavar="<n>", help="Rows per GETBULK page."
    )
    parser.add_argument("-e", dest="env_file", metavar="<file>", help="Optional env file.")
    parser.add_argument(
        "-v", dest="verbose", action="count", default=0, help="Log to stderr (-vv for debug)."
    )
    return parser


def _configure_logging(cfg: Settings, verbose: int) -> None:
    level = getattr(logging, cfg.LOG_LEVEL)
    if verbose:
        level = min(level, logging.INFO if verbose == 1 else logging.DEBUG)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(
    argv: Sequence[str] | None = None,
    session_factory: Callable[..., Session] = open_session,
) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        # -h printed the help text; a plugin run that checked nothing is UNKNOWN
        return int(Severity.UNKNOWN)

    try:
        # -H is mandatory even when SNMP_HOST comes from the environment
        if args.host is None:
            raise MissingParameter("-H <host> is required")
        cfg = load_settings(
            args.env_file,
            SNMP_HOST=args.host,
            SNMP_COMMUNITY=args.community,
            REQUIRED_PEERS=args.peers,
            SNMP_TIMEOUT_SECONDS=args.timeout,
            WALK_PAGE_SIZE=args.page_size,
        )
        if cfg.SNMP_HOST is None:
            raise MissingParameter("-H <host> is required")
    except MissingParameter as exc:
        print(f"{Severity.UNKNOWN.name}: {exc}")
        print(parser.format_usage(), end="")
        return int(Severity.UNKNOWN)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        print(f"{Severity.UNKNOWN.name}: invalid configuration: {problems}")
        return int(Severity.UNKNOWN)
    except OSError as exc:
        print(f"{Severity.UNKNOWN.name}: could not read env file: {exc}")
        return int(Severity.UNKNOWN)

    _configure_logging(cfg, args.verbose)

    try:
        with session_factory(
            cfg.SNMP_HOST,
            community=cfg.SNMP_COMMUNITY,
            timeout=cfg.SNMP_TIMEOUT_SECONDS,
            retries=cfg.SNMP_RETRIES,
            snmpget_bin=cfg.SNMPGET_BIN,
            snmpbulkget_bin=cfg.SNMPBULKGET_BIN,
        ) as session:
            report = run_checks(session, cfg, CHECKS)
    except TransportError as exc:
        report = Report(Severity.ERROR, f"SNMP transport failure: {exc}")
    except ProtocolError as exc:
        report = Report(Severity.ERROR, f"SNMP protocol error: {exc}")
    except InvalidArgument as exc:
        report = Report(Severity.ERROR, f"invalid argument: {exc}")
    except Exception as exc:  # noqa: BLE001
        logger.exception("unexpected failure while checking %s", cfg.SNMP_HOST)
        report = Report(Severity.ERROR, f"unexpected failure: {type(exc).__name__}")

    print(report)
    return int(report.severity)


if __name__ == "__main__":
    sys.exit(main())
