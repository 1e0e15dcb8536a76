"""Capacity sampling via the POSIX ``df`` utility."""

from __future__ import annotations

import logging
import os
import socket
import subprocess
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Sequence

from errors import ParseError, SamplingError
from models.records import CapacityRecord

logger = logging.getLogger(__name__)

DF_COMMAND: tuple[str, ...] = ("df", "-kP")
_MOUNT_POINT_SEPARATOR = "% /"
_EXPECTED_COLUMNS = 6


def _parse_kb(token: str, column: str, line: str) -> int:
    try:
        value = int(token)
    except ValueError as exc:
        raise ParseError(f"invalid {column} value {token!r}", line) from exc
    if value < 0:
        raise ParseError(f"negative {column} value {token!r}", line)
    return value


def _parse_percentage(token: str, line: str) -> Decimal:
    try:
        value = Decimal(token.rstrip("%"))
    except InvalidOperation as exc:
        raise ParseError(f"invalid percentage {token!r}", line) from exc
    if not value.is_finite():
        raise ParseError(f"invalid percentage {token!r}", line)
    if value < 0 or value > 100:
        raise ParseError(f"percentage out of range {token!r}", line)
    return value / Decimal(100)


def _parse_mount_point(line: str, tokens: Sequence[str]) -> str:
    if len(tokens) < _EXPECTED_COLUMNS:
        raise ParseError(
            f"expected {_EXPECTED_COLUMNS} columns, found {len(tokens)}", line
        )
    if len(tokens) == _EXPECTED_COLUMNS:
        return tokens[5]

    # Mount points containing spaces spill into extra columns.
    pieces = line.split(_MOUNT_POINT_SEPARATOR)
    if len(pieces) != 2:
        raise ParseError("cannot locate mount point in line", line)
    return "/" + pieces[1]


def parse_df_line(
    line: str, hostname: str, captured_at: Optional[datetime] = None
) -> CapacityRecord:
    """Map one data line of ``df -kP`` output to a record."""
    tokens = line.split()
    mount_point = _parse_mount_point(line, tokens)
    return CapacityRecord(
        hostname=hostname,
        file_system_name=tokens[0],
        total_space_kb=_parse_kb(tokens[1], "total", line),
        used_space_kb=_parse_kb(tokens[2], "used", line),
        free_space_kb=_parse_kb(tokens[3], "free", line),
        percentage_used=_parse_percentage(tokens[4], line),
        mount_point=mount_point,
        captured_at=captured_at,
    )


def parse_df_output(
    output: str, hostname: str, captured_at: Optional[datetime] = None
) -> list[CapacityRecord]:
    """Parse full ``df -kP`` output, skipping the header and unparseable lines."""
    records: list[CapacityRecord] = []
    for line_number, line in enumerate(output.splitlines(), start=1):
        if line_number == 1 or not line.strip():
            continue
        try:
            records.append(parse_df_line(line, hostname, captured_at))
        except ParseError as exc:
            exc.line_number = line_number
            logger.warning(
                "Could not parse 'df' line: %s",
                exc,
                extra={"line_number": line_number, "raw_line": line},
            )
    return records


def _run_df(command: Sequence[str], timeout: Optional[float]) -> str:
    env = dict(os.environ, LC_ALL="C")
    completed = subprocess.run(
        list(command),
        capture_output=True,
        text=True,
        check=True,
        timeout=timeout,
        env=env,
    )
    return completed.stdout


class CapacitySampler:
    """Runs the capacity utility and turns its output into records."""

    def __init__(
        self,
        command: Sequence[str] = DF_COMMAND,
        timeout: Optional[float] = 30.0,
        hostname_resolver: Callable[[], str] = socket.gethostname,
        runner: Callable[[Sequence[str], Optional[float]], str] = _run_df,
    ) -> None:
        self.command = tuple(command)
        self.timeout = timeout
        self._resolve_hostname = hostname_resolver
        self._runner = runner

    def resolve_hostname(self) -> str:
        try:
            hostname = self._resolve_hostname()
        except OSError as exc:
            raise SamplingError(f"Could not resolve local host name: {exc}") from exc
        if not hostname:
            raise SamplingError("Local host name is empty.")
        return hostname

    def sample(self, captured_at: Optional[datetime] = None) -> list[CapacityRecord]:
        hostname = self.resolve_hostname()
        command_text = " ".join(self.command)
        try:
            output = self._runner(self.command, self.timeout)
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise SamplingError(
                f"{command_text!r} exited with status {exc.returncode}: {stderr}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise SamplingError(
                f"{command_text!r} timed out after {exc.timeout} seconds"
            ) from exc
        except OSError as exc:
            raise SamplingError(f"Could not run {command_text!r}: {exc}") from exc

        records = parse_df_output(output, hostname, captured_at)
        logger.debug(
            "Sampled filesystems",
            extra={"hostname": hostname, "row_count": len(records)},
        )
        return records
