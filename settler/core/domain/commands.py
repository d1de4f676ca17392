"""
Commands — атомарный пакет внешних вызовов для execution agent

Command — упорядоченный дескриптор (target, call, args). Agent
исполняет список команд как одну атомарную единицу и возвращает
результаты в том же порядке. Двухшаговые протоколы (request → claim)
остаются двумя командами в одном пакете.
"""

from dataclasses import dataclass
from typing import Any, Tuple


@dataclass(frozen=True)
class Command:
    """Один внешний вызов от имени agent."""

    target: str  # адрес контракта
    call: str  # имя метода
    args: Tuple[Any, ...] = ()

    def describe(self) -> str:
        rendered = ", ".join(repr(a) for a in self.args)
        return f"{self.call}({rendered}) @ {self.target}"


@dataclass(frozen=True)
class CommandResult:
    """Результат команды (порядок совпадает с пакетом)."""

    index: int
    target: str
    call: str
    value: Any
