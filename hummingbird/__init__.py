"""Hummingbird - provider-agnostic agent orchestration."""

__version__ = "0.1.0"

from hummingbird.adapters import (
    AdapterRegistry,
    ProviderAdapter,
    create_agent,
    create_agent_with_adapter,
)
from hummingbird.agent import Agent, AgentState
from hummingbird.config import Config, get_config, set_config
from hummingbird.events import (
    AgentEvent,
    AssistantEvent,
    DeltaAccumulator,
    ErrorEvent,
    FinalEvent,
    SystemEvent,
    ToolResultEvent,
    accumulate_events,
)
from hummingbird.exceptions import AgentError, HummingbirdError, ProviderError
from hummingbird.policy import PermissionEngine
from hummingbird.threads import Thread, ThreadManager
from hummingbird.types import (
    AgentOptions,
    Message,
    PermissionRule,
    StructuredOutputConfig,
    ThreadRef,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Usage,
    UserMessage,
)

__all__ = [
    "__version__",
    "AdapterRegistry",
    "ProviderAdapter",
    "create_agent",
    "create_agent_with_adapter",
    "Agent",
    "AgentState",
    "Config",
    "get_config",
    "set_config",
    "AgentEvent",
    "AssistantEvent",
    "DeltaAccumulator",
    "ErrorEvent",
    "FinalEvent",
    "SystemEvent",
    "ToolResultEvent",
    "accumulate_events",
    "AgentError",
    "HummingbirdError",
    "ProviderError",
    "PermissionEngine",
    "Thread",
    "ThreadManager",
    "AgentOptions",
    "Message",
    "PermissionRule",
    "StructuredOutputConfig",
    "ThreadRef",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "Usage",
    "UserMessage",
]
