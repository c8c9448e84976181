"""Bash tool for executing shell commands."""

import asyncio
import os
from typing import Any

from hummingbird.config import get_config
from hummingbird.logging import get_logger
from hummingbird.types import ToolDefinition

log = get_logger(__name__)

BASH_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "cmd": {"type": "string", "description": "The bash command to execute"},
        "cwd": {"type": "string", "description": "Working directory"},
        "timeout": {"type": "number", "description": "Timeout in seconds"},
        "env": {"type": "object", "description": "Environment variables"},
    },
    "required": ["cmd"],
}


async def run_command(
    cmd: str,
    cwd: str | None = None,
    timeout: float = 30.0,
    env: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Run a shell command and capture its output.

    Args:
        cmd: Shell command line
        cwd: Optional working directory
        timeout: Seconds before the process is killed
        env: Extra environment variables layered over the current environment

    Returns:
        ``{stdout, stderr, exitCode}``, plus ``error`` when the command failed
        or timed out
    """
    process_env = os.environ.copy()
    for key, value in (env or {}).items():
        process_env[str(key)] = str(value)

    try:
        log.info("Executing shell command", cmd=cmd, cwd=cwd, timeout=timeout)
        process = await asyncio.create_subprocess_shell(
            cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=process_env,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log.warning("Shell command timed out", cmd=cmd, timeout=timeout)
            return {
                "stdout": "",
                "stderr": "",
                "exitCode": process.returncode or 1,
                "error": f"Command timed out after {timeout}s",
            }
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        result: dict[str, Any] = {
            "stdout": stdout.decode("utf-8", errors="replace").strip(),
            "stderr": stderr.decode("utf-8", errors="replace").strip(),
            "exitCode": process.returncode,
        }
        if process.returncode != 0:
            result["error"] = f"Command failed with exit code {process.returncode}: {cmd}"
        return result

    except Exception as e:
        log.error("Shell command failed", cmd=cmd, error=str(e))
        return {"stdout": "", "stderr": "", "exitCode": 1, "error": str(e)}


def create_bash_tool(timeout: float | None = None) -> ToolDefinition:
    """Create the ``Bash`` tool.

    Args:
        timeout: Default timeout in seconds (defaults to ``tools.bash_timeout``)

    Returns:
        ToolDefinition with a subprocess-backed handler
    """
    default_timeout = timeout if timeout is not None else get_config().tools.bash_timeout

    async def handler(args: dict[str, Any]) -> dict[str, Any]:
        requested = args.get("timeout")
        effective = float(requested) if requested else default_timeout
        return await run_command(
            args["cmd"],
            cwd=args.get("cwd"),
            timeout=max(0.1, effective),
            env=args.get("env"),
        )

    return ToolDefinition(
        name="Bash",
        description="Execute bash commands",
        input_schema=BASH_INPUT_SCHEMA,
        handler=handler,
        runtime="builtin",
    )
