"""In-memory registry for pluggable speech backends."""
from typing import Any, Callable, Dict, Optional

_REGISTRY: Dict[str, Callable[..., Any]] = {}


def bind_model(key: str, fn: Callable[..., Any]) -> None:
    """Bind a factory to a registry key."""
    _REGISTRY[key] = fn


def unbind_model(key: str) -> None:
    _REGISTRY.pop(key, None)


def get_model(key: str) -> Callable[..., Any]:
    """Retrieve a factory from the registry.

    Raises:
        KeyError: If no factory has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


def resolve_optional(key: str) -> Optional[Any]:
    """Build the bound component, or ``None`` when nothing is bound."""

    try:
        factory = get_model(key)
    except KeyError:
        return None
    return factory()


RECOGNITION_KEY = "speech.recognition"
SYNTHESIS_KEY = "speech.synthesis"
