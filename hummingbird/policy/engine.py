"""Permission engine for tool execution."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from hummingbird.logging import get_logger
from hummingbird.policy.matcher import match_args, match_glob
from hummingbird.types import PermissionAction, PermissionRule

log = get_logger(__name__)


@dataclass(frozen=True)
class ToolInvocation:
    """A tool name plus the arguments it is being called with."""

    tool: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PermissionDecision:
    """Verdict for a single invocation."""

    action: PermissionAction
    delegate_to: str | None = None
    matched_rule: PermissionRule | None = None


AskCallback = Callable[[ToolInvocation], Awaitable[bool]]


def _coerce_rule(rule: PermissionRule | dict[str, Any]) -> PermissionRule:
    if isinstance(rule, PermissionRule):
        return rule
    return PermissionRule(**rule)


class PermissionEngine:
    """Ordered-rule decision function over (tool, arguments).

    Rules are walked in list order and the first match wins; an invocation no
    rule matches is decided as ``ask``.
    """

    def __init__(self, rules: list[PermissionRule | dict[str, Any]] | None = None):
        self._rules: list[PermissionRule] = [_coerce_rule(rule) for rule in rules or []]

    def evaluate(self, invocation: ToolInvocation) -> PermissionDecision:
        """Evaluate a tool invocation against the rules."""
        for rule in self._rules:
            if self._matches_rule(invocation, rule):
                log.debug(
                    "Permission rule matched",
                    tool=invocation.tool,
                    rule_tool=rule.tool,
                    action=rule.action,
                )
                return PermissionDecision(action=rule.action, delegate_to=rule.to, matched_rule=rule)

        return PermissionDecision(action="ask")

    @staticmethod
    def _matches_rule(invocation: ToolInvocation, rule: PermissionRule) -> bool:
        if not match_glob(invocation.tool, rule.tool):
            return False
        if rule.matches and not match_args(invocation.arguments or {}, rule.matches):
            return False
        return True

    def add_rules(self, rules: list[PermissionRule | dict[str, Any]]) -> None:
        """Append rules after the existing ones."""
        self._rules.extend(_coerce_rule(rule) for rule in rules)

    def set_rules(self, rules: list[PermissionRule | dict[str, Any]]) -> None:
        """Replace all rules."""
        self._rules = [_coerce_rule(rule) for rule in rules]

    def get_rules(self) -> list[PermissionRule]:
        """Return a copy of the current rules."""
        return list(self._rules)

    def clear_rules(self) -> None:
        """Remove all rules."""
        self._rules = []


class InteractivePermissionEngine:
    """Resolves ``ask``/``delegate`` decisions through an async callback.

    ``allow`` and ``reject`` are answered by the wrapped engine alone. Without
    a callback, unresolved decisions are denied. ``delegate`` currently goes
    through the same callback as ``ask``.
    """

    def __init__(self, engine: PermissionEngine, ask_callback: AskCallback | None = None):
        self.engine = engine
        self.ask_callback = ask_callback

    def evaluate(self, invocation: ToolInvocation) -> PermissionDecision:
        return self.engine.evaluate(invocation)

    async def evaluate_interactive(self, invocation: ToolInvocation) -> bool:
        """Evaluate and, when needed, ask the callback for a verdict."""
        decision = self.engine.evaluate(invocation)
        return await self.resolve(invocation, decision)

    async def resolve(self, invocation: ToolInvocation, decision: PermissionDecision) -> bool:
        """Turn an already computed decision into a boolean verdict."""
        if decision.action == "allow":
            return True
        if decision.action == "reject":
            return False
        if self.ask_callback is None:
            return False
        log.debug("Resolving permission interactively", tool=invocation.tool, action=decision.action)
        return bool(await self.ask_callback(invocation))
