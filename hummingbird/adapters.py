"""Provider adapter contract, adapter registry, and agent factories."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, AsyncIterator, Callable

from hummingbird.events import AgentEvent
from hummingbird.exceptions import ConfigurationError
from hummingbird.logging import get_logger
from hummingbird.types import AgentOptions, Message

if TYPE_CHECKING:
    from hummingbird.agent import Agent, PermissionResolver
    from hummingbird.threads import ThreadManager

log = get_logger(__name__)


class ProviderAdapter(ABC):
    """Streams one model turn as normalized agent events.

    Implementations translate provider-native deltas into ``assistant``
    events (text fragments and/or tool calls) and may finish with a ``final``
    event carrying usage, or an ``error`` event.
    """

    name: str = ""

    @abstractmethod
    def send(self, messages: list[Message], options: AgentOptions) -> AsyncIterator[AgentEvent]:
        pass

    @abstractmethod
    def supports_structured_output(self) -> bool:
        pass

    @abstractmethod
    def supports_parallel_tools(self) -> bool:
        pass


AdapterFactory = Callable[[], ProviderAdapter]


class AdapterRegistry:
    """Provider name to adapter factory mapping, owned by the composing code."""

    def __init__(self, factories: dict[str, AdapterFactory] | None = None):
        self._factories: dict[str, AdapterFactory] = dict(factories or {})

    def register(self, provider: str, factory: AdapterFactory) -> None:
        """Register (or replace) the factory for a provider."""
        if not provider:
            raise ValueError("Provider name is required")
        log.debug("Registering adapter", provider=provider)
        self._factories[provider] = factory

    def unregister(self, provider: str) -> None:
        self._factories.pop(provider, None)

    def names(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, provider: str) -> bool:
        return provider in self._factories

    def create(self, provider: str) -> ProviderAdapter:
        """Instantiate the adapter registered for provider.

        Raises:
            ConfigurationError: if the provider is not registered
        """
        factory = self._factories.get(provider)
        if factory is None:
            available = ", ".join(self._factories) or "none"
            raise ConfigurationError(
                f"Provider '{provider}' not registered. Available providers: {available}"
            )
        return factory()


def create_agent(
    options: AgentOptions,
    registry: AdapterRegistry,
    thread_manager: "ThreadManager | None" = None,
    permission_resolver: "PermissionResolver | None" = None,
) -> "Agent":
    """Create an agent for ``options.provider`` using the registry."""
    from hummingbird.agent import Agent

    adapter = registry.create(options.provider)
    return Agent(
        options,
        adapter,
        thread_manager=thread_manager,
        permission_resolver=permission_resolver,
    )


def create_agent_with_adapter(
    options: AgentOptions,
    adapter: ProviderAdapter,
    thread_manager: "ThreadManager | None" = None,
    permission_resolver: "PermissionResolver | None" = None,
) -> "Agent":
    """Create an agent around an explicit adapter instance."""
    from hummingbird.agent import Agent

    return Agent(
        options,
        adapter,
        thread_manager=thread_manager,
        permission_resolver=permission_resolver,
    )
