"""
Lightweight dependency container used as the service registry of the API app.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Type, TypeVar

T = TypeVar("T")


class Container:
    _instance: "Container" | None = None

    def __init__(self) -> None:
        self._factories: Dict[Type[Any], tuple[Callable[[], Any], bool]] = {}
        self._singletons: Dict[Type[Any], Any] = {}

    @classmethod
    def instance(cls) -> "Container":
        if cls._instance is None:
            cls._instance = Container()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def register(self, interface: Type[T], factory: Callable[[], T], singleton: bool = False) -> None:
        """Register a factory for an interface."""
        self._factories[interface] = (factory, singleton)
        self._singletons.pop(interface, None)

    def register_instance(self, interface: Type[T], obj: T) -> None:
        """Register an already-built object."""
        self._factories[interface] = (lambda: obj, True)
        self._singletons[interface] = obj

    def is_registered(self, interface: Type[Any]) -> bool:
        return interface in self._factories

    def resolve(self, interface: Type[T]) -> T:
        """Build (or return the cached) instance for an interface."""
        if interface in self._singletons:
            return self._singletons[interface]

        factory_tuple = self._factories.get(interface)
        if not factory_tuple:
            raise ValueError(f"No factory registered for {interface}")

        factory, as_singleton = factory_tuple
        instance = factory()
        if as_singleton:
            self._singletons[interface] = instance
        return instance
