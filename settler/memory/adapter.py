"""
In-memory execution agent

Исполняет пакет команд атомарно от своего адреса: каждая команда
вызывает target.call(self.address, *args).
"""

import logging
from typing import List, Sequence

from settler.core.domain.commands import Command, CommandResult
from settler.core.exceptions import CommandFailed, SettlementError
from settler.memory.chain import Chain, make_address

logger = logging.getLogger(__name__)


class MemoryAdapter:
    def __init__(self, chain: Chain, label: str):
        self.chain = chain
        self.label = label
        self.address = make_address(f"adapter:{label}")

    def execute(self, commands: Sequence[Command]) -> List[CommandResult]:
        results: List[CommandResult] = []
        with self.chain.atomic.atomic(f"execute@{self.label}"):
            for index, command in enumerate(commands):
                results.append(self._dispatch(index, command))
        logger.debug("Adapter %s executed %d commands", self.label, len(results))
        return results

    def _dispatch(self, index: int, command: Command) -> CommandResult:
        if not self.chain.has_contract(command.target):
            raise CommandFailed(index, command.target, command.call, "unknown target")
        target = self.chain.resolve(command.target)

        method = None if command.call.startswith("_") else getattr(target, command.call, None)
        if not callable(method):
            raise CommandFailed(index, command.target, command.call, "unknown call")

        logger.debug("Adapter %s #%d %s", self.label, index, command.describe())
        try:
            value = method(self.address, *command.args)
        except SettlementError as e:
            logger.info("Adapter %s command #%d %s failed: %s", self.label, index, command.call, e)
            raise
        return CommandResult(index=index, target=command.target, call=command.call, value=value)
