"""Named callback hooks supplied by the host application.

Hooks let the engine ask for interactive behaviour (e.g. prompting for a
password before a critical operation) without knowing anything about UI.
"""
import inspect
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Called with (sdk_or_api, error) when a critical operation needs the user's
# password again. Must return the password or a credentials mapping.
USER_PASSWORD_INPUT = "user_password_input"


class HookRegistry:
    """Registry of ordered callback lists keyed by hook name."""

    def __init__(self):
        self._hooks: Dict[str, List[Callable[..., Any]]] = {}

    def add_hook(self, name: str, callback: Callable[..., Any], override: bool = False) -> None:
        """Register a callback for a hook.

        Args:
            name: Hook name
            callback: Sync or async callable
            override: Drop previously registered callbacks for this name
        """
        if override or name not in self._hooks:
            self._hooks[name] = []
        self._hooks[name].append(callback)
        logger.debug(f"Registered hook {name} ({len(self._hooks[name])} callbacks)")

    def del_hook(self, name: str, callback: Callable[..., Any]) -> None:
        """Remove a callback. Unknown names or callbacks are ignored."""
        callbacks = self._hooks.get(name)
        if not callbacks:
            return
        self._hooks[name] = [cb for cb in callbacks if cb is not callback]
        if not self._hooks[name]:
            del self._hooks[name]

    def has_hook(self, name: str) -> bool:
        return bool(self._hooks.get(name))

    async def call_hook(self, name: str, *args: Any, **kwargs: Any) -> List[Any]:
        """Call every callback registered for ``name`` in order.

        Returns:
            List of callback results; empty if nothing is registered

        Exceptions raised by a callback propagate to the caller.
        """
        results: List[Any] = []
        for callback in list(self._hooks.get(name, [])):
            result = callback(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            results.append(result)
        return results
