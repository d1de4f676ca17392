"""
Transaction — атомарная секция settlement

Операция coordinator — all-or-nothing: либо применяются все изменения
участников (ledger, позиции, токены, vault), либо ни одно.

Механика:
1. Re-entrant lock: единственный writer
2. На внешнем уровне вложенности снимается snapshot всех участников
3. Любое исключение восстанавливает snapshots в обратном порядке и
   пробрасывается дальше без изменений

Вложенные секции (agent.execute внутри операции coordinator) не делают
своих snapshots: откат выполняет внешняя секция.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Transactional(Protocol):
    """Участник атомарной секции."""

    def snapshot(self) -> Any:
        ...

    def restore(self, state: Any) -> None:
        ...


class SnapshotMixin:
    """
    Реализация Transactional через deepcopy перечисленных атрибутов.

    Подкласс задаёт _state_fields — имена атрибутов с изменяемым состоянием.
    """

    _state_fields: Tuple[str, ...] = ()

    def snapshot(self) -> Any:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._state_fields}

    def restore(self, state: Any) -> None:
        for name, value in state.items():
            setattr(self, name, value)


class AtomicSection:
    """Single-writer секция со snapshot/restore всех участников."""

    def __init__(self):
        self._lock = threading.RLock()
        self._participants: List[Transactional] = []
        self._depth = 0

    @property
    def participants(self) -> List[Transactional]:
        return list(self._participants)

    @property
    def active(self) -> bool:
        return self._depth > 0

    def register(self, participant: Transactional) -> None:
        if not isinstance(participant, Transactional):
            raise TypeError(f"{participant!r} does not implement snapshot/restore")
        if participant not in self._participants:
            self._participants.append(participant)

    @contextmanager
    def atomic(self, label: str = "operation") -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            snapshots = []
            if outermost:
                snapshots = [(p, p.snapshot()) for p in self._participants]
            self._depth += 1
            try:
                yield
            except BaseException as exc:
                if outermost:
                    logger.warning(
                        "Rolling back %s: %s: %s", label, type(exc).__name__, exc
                    )
                    for participant, state in reversed(snapshots):
                        participant.restore(state)
                raise
            finally:
                self._depth -= 1
