from __future__ import annotations

from collections.abc import Callable

Handler = Callable[[str], None]


class CommandDispatcher:
    """Route a line of session input to its command handler.

    A plain command has to match the whole line and its handler receives an
    empty string. A command registered with ``takes_argument=True`` matches
    ``"<command> <argument>"`` and its handler receives the trimmed argument.
    """

    def __init__(self) -> None:
        self._exact: dict[str, Handler] = {}
        self._with_argument: dict[str, Handler] = {}

    def register(self, command: str, handler: Handler, takes_argument: bool = False) -> None:
        if takes_argument:
            self._with_argument[command] = handler
        else:
            self._exact[command] = handler

    @property
    def commands(self) -> list[str]:
        return [*self._exact, *(f"{name} <file>" for name in self._with_argument)]

    def dispatch(self, line: str) -> bool:
        """Run the matching handler; returns ``False`` if nothing matched."""

        handler = self._exact.get(line)
        if handler:
            handler("")
            return True
        name, sep, argument = line.partition(" ")
        argument = argument.strip()
        handler = self._with_argument.get(name)
        if handler and sep and argument:
            handler(argument)
            return True
        return False
