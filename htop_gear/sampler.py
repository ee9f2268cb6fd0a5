"""
Process sample providers.

Each provider returns a fresh, unordered list of ProcessSample per call and
raises SampleError when the process table cannot be read at all. Individual
rows that cannot be parsed are skipped.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Dict, Iterable, List, Optional, Protocol

import psutil

from htop_gear.engine.data_models import ProcessSample
from htop_gear.errors import SampleError

logger = logging.getLogger(__name__)

PS_COMMAND = ("ps", "-axo", "pid,pcpu,pmem,state,comm")
PSUTIL_ATTRS = ["pid", "cpu_percent", "memory_percent", "status", "name"]

# psutil status constants folded back onto the ps state letters; the set of
# STATUS_* names differs between psutil releases and platforms
STATUS_CODE_NAMES = {
    "STATUS_RUNNING": "R",
    "STATUS_SLEEPING": "S",
    "STATUS_DISK_SLEEP": "D",
    "STATUS_STOPPED": "T",
    "STATUS_TRACING_STOP": "t",
    "STATUS_ZOMBIE": "Z",
    "STATUS_DEAD": "X",
    "STATUS_WAKE_KILL": "K",
    "STATUS_WAKING": "W",
    "STATUS_IDLE": "I",
    "STATUS_LOCKED": "L",
    "STATUS_WAITING": "W",
    "STATUS_PARKED": "P",
}


def build_state_codes(module=psutil) -> Dict[str, str]:
    codes: Dict[str, str] = {}
    for name, code in STATUS_CODE_NAMES.items():
        status = getattr(module, name, None)
        if status is not None:
            codes[status] = code
    return codes


PSUTIL_STATE_CODES = build_state_codes()


class SampleProvider(Protocol):
    def sample(self) -> List[ProcessSample]:
        ...


def _to_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        return 0.0


def parse_ps_line(line: str) -> Optional[ProcessSample]:
    fields = line.split()
    if len(fields) < 5:
        return None
    try:
        pid = int(fields[0])
    except ValueError:
        return None
    return ProcessSample(
        pid=pid,
        cpu=_to_float(fields[1]),
        mem=_to_float(fields[2]),
        state=fields[3],
        command=" ".join(fields[4:]),
    )


def parse_ps_output(output: str) -> List[ProcessSample]:
    """Parses `ps -axo pid,pcpu,pmem,state,comm` output, header included."""
    samples: List[ProcessSample] = []
    lines = output.splitlines()
    for line in lines[1:]:
        sample = parse_ps_line(line.strip())
        if sample is None:
            if line.strip():
                logger.debug("Skipping malformed ps row: %r", line)
            continue
        samples.append(sample)
    return samples


class PsSampleProvider:
    """Reads the process table through the `ps` binary."""

    def __init__(self, command: Iterable[str] = PS_COMMAND):
        self.command = list(command)

    def sample(self) -> List[ProcessSample]:
        try:
            result = subprocess.run(self.command, capture_output=True, text=True, errors="replace", check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise SampleError(f"failed to read processes: {exc}") from exc
        return parse_ps_output(result.stdout)


class PsutilSampleProvider:
    """
    Reads the process table through psutil.

    process_iter keeps Process instances between calls, so cpu_percent
    reports usage since the previous tick (0.0 on a process's first tick).
    """

    def sample(self) -> List[ProcessSample]:
        samples: List[ProcessSample] = []
        try:
            for proc in psutil.process_iter(PSUTIL_ATTRS, ad_value=None):
                sample = self._to_sample(proc.info)
                if sample is None:
                    logger.debug("Skipping incomplete process row: %r", proc.info)
                    continue
                samples.append(sample)
        except psutil.Error as exc:
            raise SampleError(f"failed to read processes: {exc}") from exc
        return samples

    @staticmethod
    def _to_sample(info: dict) -> Optional[ProcessSample]:
        pid = info.get("pid")
        cpu = info.get("cpu_percent")
        mem = info.get("memory_percent")
        status = info.get("status")
        name = info.get("name")
        if not isinstance(pid, int) or cpu is None or mem is None or not status or not name:
            return None
        return ProcessSample(
            pid=pid,
            cpu=float(cpu),
            mem=float(mem),
            state=PSUTIL_STATE_CODES.get(status, "?"),
            command=name,
        )


def make_sample_provider(name: str) -> SampleProvider:
    if name == "psutil":
        return PsutilSampleProvider()
    if name == "ps":
        return PsSampleProvider()
    raise ValueError(f"Unknown sampler: {name}")
