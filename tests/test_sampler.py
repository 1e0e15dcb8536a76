from __future__ import annotations

import subprocess
from datetime import datetime, timezone
from typing import Optional, Sequence

import pytest

from errors import SamplingError
from services.sampler import DF_COMMAND, CapacitySampler

DF_OUTPUT = """Filesystem     1024-blocks      Used Available Capacity Mounted on
/dev/sda1         41152736  23478232  15561016      61% /
/dev/sdb1        976762580      1024 976761556       1% /media/My Disk
"""


class FakeRunner:
    def __init__(self, output: str = DF_OUTPUT, error: Optional[BaseException] = None) -> None:
        self.output = output
        self.error = error
        self.calls: list[tuple[tuple[str, ...], Optional[float]]] = []

    def __call__(self, command: Sequence[str], timeout: Optional[float]) -> str:
        self.calls.append((tuple(command), timeout))
        if self.error is not None:
            raise self.error
        return self.output


def test_sample_returns_records_for_every_filesystem() -> None:
    runner = FakeRunner()
    sampler = CapacitySampler(timeout=5.0, hostname_resolver=lambda: "web-1", runner=runner)
    captured_at = datetime(2024, 1, 1, tzinfo=timezone.utc)

    records = sampler.sample(captured_at)

    assert runner.calls == [(DF_COMMAND, 5.0)]
    assert [record.mount_point for record in records] == ["/", "/media/My Disk"]
    assert {record.hostname for record in records} == {"web-1"}
    assert {record.captured_at for record in records} == {captured_at}


def test_hostname_is_resolved_once_per_pass() -> None:
    calls: list[int] = []

    def resolver() -> str:
        calls.append(1)
        return "web-1"

    sampler = CapacitySampler(hostname_resolver=resolver, runner=FakeRunner())
    sampler.sample()

    assert len(calls) == 1


def test_failed_command_is_a_sampling_error() -> None:
    error = subprocess.CalledProcessError(1, list(DF_COMMAND), output="", stderr="df: boom")
    sampler = CapacitySampler(hostname_resolver=lambda: "web-1", runner=FakeRunner(error=error))

    with pytest.raises(SamplingError, match="df: boom"):
        sampler.sample()


def test_missing_executable_is_a_sampling_error() -> None:
    sampler = CapacitySampler(
        hostname_resolver=lambda: "web-1",
        runner=FakeRunner(error=FileNotFoundError("df")),
    )

    with pytest.raises(SamplingError):
        sampler.sample()


def test_timeout_is_a_sampling_error() -> None:
    error = subprocess.TimeoutExpired(list(DF_COMMAND), timeout=2)
    sampler = CapacitySampler(hostname_resolver=lambda: "web-1", runner=FakeRunner(error=error))

    with pytest.raises(SamplingError, match="timed out"):
        sampler.sample()


def test_hostname_failure_is_fatal_before_running_df() -> None:
    def resolver() -> str:
        raise OSError("name lookup failed")

    runner = FakeRunner()
    sampler = CapacitySampler(hostname_resolver=resolver, runner=runner)

    with pytest.raises(SamplingError, match="host name"):
        sampler.sample()
    assert runner.calls == []


def test_empty_hostname_is_rejected() -> None:
    sampler = CapacitySampler(hostname_resolver=lambda: "", runner=FakeRunner())

    with pytest.raises(SamplingError):
        sampler.sample()
