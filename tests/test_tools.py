import sys

import pytest

from spectre.sweep.model import SweepOptions
from spectre.sweep.tools import HackRFSweep, ProducerError, RTLPower, SweepTool, make_sweep_tool


class _ScriptTool(SweepTool):
    name = "script"

    def __init__(self, script: str) -> None:
        super().__init__(SweepOptions(), executable=sys.executable)
        self.script = script

    def build_command(self):
        return [self.executable, "-c", self.script]


def test_hackrf_command_uses_whole_mhz_span() -> None:
    cmd = HackRFSweep(SweepOptions()).build_command()
    assert cmd == ["hackrf_sweep", "-f", "400:450", "-n", "8192", "-w", "12500"]


def test_rtl_power_command_uses_hz_span_and_interval() -> None:
    cmd = RTLPower(SweepOptions(integration_interval=10.0)).build_command()
    assert cmd == ["rtl_power", "-f", "400000000:450000000:12500", "-i", "10s", "-"]


def test_make_sweep_tool_by_name() -> None:
    assert isinstance(make_sweep_tool("HackRF", SweepOptions()), HackRFSweep)
    assert isinstance(make_sweep_tool("rtlsdr", SweepOptions()), RTLPower)
    with pytest.raises(ValueError):
        make_sweep_tool("airspy", SweepOptions())


def test_missing_executable_is_a_producer_error() -> None:
    tool = HackRFSweep(SweepOptions(), executable="spectre-no-such-sweep-tool")
    with pytest.raises(ProducerError):
        list(tool.lines())


def test_lines_stream_tool_output() -> None:
    tool = _ScriptTool("print('a'); print('b')")
    assert [line.strip() for line in tool.lines()] == ["a", "b"]
    tool.close()


def test_non_zero_exit_raises_after_output() -> None:
    tool = _ScriptTool("print('a'); raise SystemExit(3)")
    seen = []
    with pytest.raises(ProducerError):
        for line in tool.lines():
            seen.append(line.strip())
    assert seen == ["a"]
