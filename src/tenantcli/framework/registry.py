"""Process-wide command registry."""

from __future__ import annotations

from typing import Iterator, Optional

from tenantcli.framework.descriptor import CommandDescriptor


class CommandRegistry:
    """Holds every command descriptor, keyed by its full name.

    The registry is filled once at startup and then frozen; registering
    after :meth:`freeze` is a programming error.
    """

    def __init__(self) -> None:
        self._commands: dict[str, CommandDescriptor] = {}
        self._frozen = False

    def register(self, descriptor: CommandDescriptor) -> CommandDescriptor:
        if self._frozen:
            raise RuntimeError(f"Cannot register '{descriptor.name}': registry is frozen")
        if descriptor.name in self._commands:
            raise ValueError(f"Command '{descriptor.name}' is already registered")
        self._commands[descriptor.name] = descriptor
        return descriptor

    def freeze(self) -> CommandRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Optional[CommandDescriptor]:
        return self._commands.get(name)

    def all(self) -> list[CommandDescriptor]:
        """Return every descriptor, sorted by name."""
        return [self._commands[name] for name in sorted(self._commands)]

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._commands)
