"""Built-in tools for Hummingbird agents."""

from hummingbird.tools.bash import create_bash_tool, run_command
from hummingbird.tools.fetch import create_fetch_tool

__all__ = [
    "create_bash_tool",
    "create_fetch_tool",
    "run_command",
]
