from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from ..errors import ConfigError

T = TypeVar("T")


@dataclass
class Registry(Generic[T]):
    """Named builders for pluggable collaborators (workflows, selectors)."""

    kind: str
    _builders: dict[str, Callable[..., T]] = field(default_factory=dict)

    def register(
        self, name: str
    ) -> Callable[[Callable[..., T]], Callable[..., T]]:
        normalized = _normalize_name(name, self.kind)

        def decorator(fn: Callable[..., T]) -> Callable[..., T]:
            if normalized in self._builders:
                raise ConfigError(
                    f"Duplicate {self.kind} registration '{name}'",
                    context={"name": normalized},
                )
            self._builders[normalized] = fn
            return fn

        return decorator

    def get(self, name: str) -> Callable[..., T]:
        normalized = _normalize_name(name, self.kind)
        builder = self._builders.get(normalized)
        if builder is None:
            raise ConfigError(
                f"Unknown {self.kind} '{name}'",
                context={
                    "name": normalized,
                    "available": ", ".join(self.list_names()),
                },
            )
        return builder

    def build(self, name: str, **kwargs: Any) -> T:
        return self.get(name)(**kwargs)

    def list_names(self) -> list[str]:
        return sorted(self._builders.keys())


def _normalize_name(name: str, kind: str) -> str:
    normalized = name.strip().lower()
    if not normalized:
        raise ConfigError(f"{kind} name must not be empty")
    return normalized
