"""
probe/snmp/transport.py - SNMP v2c session backed by the net-snmp CLI tools.

Each request shells out to `snmpget` / `snmpbulkget` with numeric OID output
(-On), quick print (-Oq), numeric enums (-Oe) and raw timeticks (-Ot), then
parses one "<oid> <value>" binding per line.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from typing import Sequence

from probe.snmp import InvalidArgument, TransportError, VarBind, normalize_oid

logger = logging.getLogger(__name__)

OUTPUT_OPTIONS = ["-On", "-Oq", "-Oe", "-Ot"]

# Values net-snmp prints in place of data for SNMP exception responses
EXCEPTION_VALUES = (
    "No Such Object available on this agent at this OID",
    "No Such Instance currently exists at this OID",
    "No more variables left in this MIB View",
)

_BINDING_RE = re.compile(r"^\.?(\d+(?:\.\d+)*)(?:\s+(.*))?$")

# Extra wall-clock allowance on top of the tool's own timeout x retries
PROCESS_GRACE_SECONDS = 5


class NetSnmpSession:
    """One agent, one community. Stateless between requests apart from `closed`."""

    def __init__(
        self,
        host: str,
        community: str,
        timeout: int,
        retries: int,
        snmpget_bin: str,
        snmpbulkget_bin: str,
    ) -> None:
        self.host = host
        self.community = community
        self.timeout = timeout
        self.retries = retries
        self.snmpget_bin = snmpget_bin
        self.snmpbulkget_bin = snmpbulkget_bin
        self.closed = False

    def __enter__(self) -> NetSnmpSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if not self.closed:
            logger.debug("closing SNMP session to %s", self.host)
        self.closed = True

    def get(self, oids: Sequence[str]) -> list[VarBind]:
        return self._run([self.snmpget_bin], oids)

    def get_bulk(self, oids: Sequence[str], max_repetitions: int) -> list[VarBind]:
        if max_repetitions < 1:
            raise InvalidArgument(f"max_repetitions must be >= 1, got {max_repetitions}")
        return self._run([self.snmpbulkget_bin, "-Cn0", f"-Cr{max_repetitions}"], oids)

    def _base_args(self) -> list[str]:
        return [
            "-v2c",
            "-c",
            self.community,
            "-t",
            str(self.timeout),
            "-r",
            str(self.retries),
            *OUTPUT_OPTIONS,
        ]

    def _run(self, command: list[str], oids: Sequence[str]) -> list[VarBind]:
        if self.closed:
            raise TransportError(f"session to {self.host} is closed")
        if not oids:
            return []

        args = command[:1] + self._base_args() + command[1:] + [self.host]
        args += ["." + normalize_oid(oid) for oid in oids]
        process_timeout = self.timeout * (self.retries + 1) + PROCESS_GRACE_SECONDS
        logger.debug("running %s", " ".join(a for a in args if a != self.community))

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=process_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise TransportError(
                f"{command[0]} did not finish within {process_timeout}s"
            ) from exc
        except OSError as exc:
            raise TransportError(f"could not run {command[0]}: {exc}") from exc

        stderr = result.stderr.strip()
        if result.returncode != 0 or stderr.startswith("Timeout"):
            detail = stderr or result.stdout.strip() or f"exit code {result.returncode}"
            raise TransportError(detail.splitlines()[0][:240])
        if stderr:
            logger.debug("%s stderr: %s", command[0], stderr[:240])

        return parse_bindings(result.stdout)


def parse_bindings(output: str) -> list[VarBind]:
    """Parse -On -Oq output. Lines that do not start with an OID continue the previous value."""
    bindings: list[VarBind] = []
    current_oid: str | None = None
    current_lines: list[str] = []

    def flush() -> None:
        if current_oid is not None:
            bindings.append(VarBind(current_oid, _decode_value("\n".join(current_lines))))

    for line in output.splitlines():
        match = _BINDING_RE.match(line) if line.startswith(".") else None
        if match:
            flush()
            current_oid = match.group(1)
            current_lines = [match.group(2) or ""]
        elif current_oid is not None:
            current_lines.append(line)
    flush()
    return bindings


def _decode_value(raw: str) -> str | None:
    value = raw.strip()
    if value.startswith(EXCEPTION_VALUES):
        return None
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return value


def open_session(
    host: str,
    community: str = "public",
    timeout: int = 5,
    retries: int = 1,
    snmpget_bin: str = "snmpget",
    snmpbulkget_bin: str = "snmpbulkget",
) -> NetSnmpSession:
    if not host or not host.strip():
        raise InvalidArgument("host is required")
    if timeout < 1:
        raise InvalidArgument(f"timeout must be >= 1, got {timeout}")
    if retries < 0:
        raise InvalidArgument(f"retries must be >= 0, got {retries}")

    resolved = []
    for binary in (snmpget_bin, snmpbulkget_bin):
        path = shutil.which(binary)
        if path is None:
            raise TransportError(f"{binary} not found on PATH (install net-snmp tools)")
        resolved.append(path)

    logger.debug("opening SNMP v2c session to %s (timeout %ss, retries %s)", host, timeout, retries)
    return NetSnmpSession(host.strip(), community, timeout, retries, *resolved)
