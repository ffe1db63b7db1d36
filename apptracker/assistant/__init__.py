"""Text generator registry with lazy loading.

Usage:
    from apptracker.assistant import get_generator

    generator = get_generator("gemini", model="gemini-2.5-flash")
    drafter = FollowUpDrafter(generator, settings.assistant)
"""

import importlib
from typing import Any

from apptracker.assistant.llm import RateLimitedError, TextGenerator

__all__ = ["RateLimitedError", "TextGenerator", "available_generators", "get_generator"]

# Lazy registry: maps generator name -> (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "gemini": ("apptracker.assistant.llm", "GeminiGenerator"),
}


def get_generator(name: str, **kwargs: Any) -> TextGenerator:
    """Instantiate and return a text generator by name.

    Raises:
        ValueError: If the generator name is unknown.
    """
    if name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown text generator '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls(**kwargs)  # type: ignore[no-any-return]


def available_generators() -> list[str]:
    """Return sorted list of registered generator names."""
    return sorted(_REGISTRY)
