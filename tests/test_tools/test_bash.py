from pathlib import Path

import pytest

from hummingbird.config import Config, get_config, set_config
from hummingbird.tools import create_bash_tool


@pytest.mark.asyncio
async def test_bash_tool_captures_output():
    tool = create_bash_tool(timeout=10)

    result = await tool.handler({"cmd": "echo hello && echo oops 1>&2"})

    assert tool.name == "Bash"
    assert tool.input_schema["required"] == ["cmd"]
    assert result == {"stdout": "hello", "stderr": "oops", "exitCode": 0}


@pytest.mark.asyncio
async def test_bash_tool_reports_failure_exit_code():
    tool = create_bash_tool(timeout=10)

    result = await tool.handler({"cmd": "echo partial; exit 3"})

    assert result["stdout"] == "partial"
    assert result["exitCode"] == 3
    assert "exit code 3" in result["error"]


@pytest.mark.asyncio
async def test_bash_tool_honors_cwd_and_env(tmp_path: Path):
    tool = create_bash_tool(timeout=10)

    result = await tool.handler({"cmd": "pwd; echo $GREETING", "cwd": str(tmp_path), "env": {"GREETING": "hi"}})

    assert result["stdout"].splitlines() == [str(tmp_path.resolve()), "hi"]


@pytest.mark.asyncio
async def test_bash_tool_times_out():
    tool = create_bash_tool(timeout=10)

    result = await tool.handler({"cmd": "sleep 5", "timeout": 0.2})

    assert "timed out" in result["error"]
    assert result["exitCode"] != 0


@pytest.mark.asyncio
async def test_bash_tool_missing_cwd_is_an_error(tmp_path: Path):
    tool = create_bash_tool(timeout=10)

    result = await tool.handler({"cmd": "ls", "cwd": str(tmp_path / "nope")})

    assert result["exitCode"] == 1
    assert result["error"]


@pytest.mark.asyncio
async def test_bash_tool_timeout_defaults_from_config():
    previous = get_config()
    try:
        set_config(Config(tools={"bash_timeout": 0.2}))
        tool = create_bash_tool()
    finally:
        set_config(previous)

    result = await tool.handler({"cmd": "sleep 5"})

    assert tool.runtime == "builtin"
    assert result["error"] == "Command timed out after 0.2s"
