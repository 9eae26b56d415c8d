"""Wrappers around the external sweep tools (hackrf_sweep, rtl_power).

Each wrapper owns one subprocess and exposes its stdout as a stream of text
rows. Parsing and aggregation happen elsewhere.
"""

from __future__ import annotations

import shutil
import subprocess
from typing import Dict, Iterator, List, Optional, Type

from spectre.sweep.model import SweepOptions
from spectre.util.logging import get_logger

logger = get_logger(__name__)


class ProducerError(RuntimeError):
    """The sweep tool could not be started or terminated abnormally."""


class SweepTool:
    """Base class: build a command line, run it, stream its rows."""

    name = ""
    executable = ""

    def __init__(self, options: SweepOptions, *, executable: Optional[str] = None) -> None:
        self.options = options
        if executable:
            self.executable = executable
        self.proc: Optional[subprocess.Popen] = None

    def build_command(self) -> List[str]:
        raise NotImplementedError

    def start(self) -> None:
        cmd = self.build_command()
        if shutil.which(cmd[0]) is None:
            raise ProducerError(f"{cmd[0]} not found in PATH")
        logger.info("Running %s sweep: %s", self.name, " ".join(cmd), extra={"sweep_tool": self.name})
        try:
            self.proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            raise ProducerError(f"unable to start sweep: {exc}") from exc

    def lines(self) -> Iterator[str]:
        """Yield stdout rows until the tool exits; raise if it exits with an error."""
        if self.proc is None:
            self.start()
        assert self.proc is not None and self.proc.stdout is not None
        for line in self.proc.stdout:
            yield line
        rc = self.proc.wait()
        if rc != 0:
            raise ProducerError(f"{self.executable} exited with status {rc}")
        logger.info("%s ended successfully", self.executable, extra={"sweep_tool": self.name})

    def close(self) -> None:
        if self.proc is None or self.proc.poll() is not None:
            return
        self.proc.terminate()
        try:
            self.proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self.proc.kill()
            self.proc.wait()


class HackRFSweep(SweepTool):
    name = "hackrf"
    executable = "hackrf_sweep"

    def build_command(self) -> List[str]:
        opts = self.options
        # hackrf_sweep takes whole MHz for the span.
        return [
            self.executable,
            "-f",
            f"{opts.low_freq // 1_000_000}:{opts.high_freq // 1_000_000}",
            "-n",
            str(opts.sample_size),
            "-w",
            str(opts.bin_size),
        ]


class RTLPower(SweepTool):
    name = "rtlsdr"
    executable = "rtl_power"

    def build_command(self) -> List[str]:
        opts = self.options
        interval_s = max(1, int(round(opts.integration_interval)))
        return [
            self.executable,
            "-f",
            f"{opts.low_freq}:{opts.high_freq}:{opts.bin_size}",
            "-i",
            f"{interval_s}s",
            "-",
        ]


SWEEP_TOOLS: Dict[str, Type[SweepTool]] = {
    HackRFSweep.name: HackRFSweep,
    RTLPower.name: RTLPower,
}


def make_sweep_tool(name: str, options: SweepOptions) -> SweepTool:
    try:
        tool_cls = SWEEP_TOOLS[name.lower()]
    except KeyError:
        raise ValueError(f"{name!r} is not a supported SDR type, pick one of: {', '.join(sorted(SWEEP_TOOLS))}") from None
    return tool_cls(options)
