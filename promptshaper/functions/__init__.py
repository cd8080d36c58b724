"""Built-in functions that templates can call.

Functions are invoked inline, e.g. `{{timestamp("%Y")}}`, or bound to a
variable, e.g. `{{today = timestamp("%A")}}`. Arguments are passed
positionally and the return value (text or a number) replaces the slot.

Built-in functions:
    file       - Read a text file
    timestamp  - Current date/time
    random     - Random integer in a range
    upper      - Uppercase text
    lower      - Lowercase text

Example:
    @Functions.register("shout")
    def shout(text):
        return text.upper() + "!"
"""

import logging
from types import MappingProxyType
from typing import Callable, Mapping, Union

logger = logging.getLogger(__name__)

FunctionResult = Union[str, int, float]


class Functions:
    """Registry of named functions available to templates.

    The evaluator never reads this class directly; it receives a read-only
    mapping from `as_mapping()` (or any other mapping of name -> callable).
    """

    _registry: dict[str, Callable[..., FunctionResult]] = {}

    @classmethod
    def register(cls, function_name: str):
        """Decorator to register a function under a template name.

        Args:
            function_name: Name used in templates, e.g. 'upper' for {{upper("x")}}

        Returns:
            Decorator function
        """

        def decorator(func: Callable) -> Callable:
            cls._registry[function_name] = func
            logger.debug(f"Registered function '{function_name}' with {func.__name__}")
            return func

        return decorator

    @classmethod
    def unregister(cls, function_name: str) -> None:
        cls._registry.pop(function_name, None)

    @classmethod
    def get(cls, function_name: str):
        return cls._registry.get(function_name)

    @classmethod
    def is_registered(cls, function_name: str) -> bool:
        return function_name in cls._registry

    @classmethod
    def list_registered(cls) -> list[str]:
        return list(cls._registry.keys())

    @classmethod
    def as_mapping(cls) -> Mapping[str, Callable[..., FunctionResult]]:
        """Read-only snapshot of the registry for one evaluation."""
        return MappingProxyType(dict(cls._registry))


# Import built-in functions to register them
from . import case, file_, random_, timestamp  # noqa: E402,F401
