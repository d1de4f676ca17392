"""
Auth — роли и явный контекст авторизации

Каждая публичная операция coordinator получает AuthContext с адресом
вызывающего; проверка роли — первое действие операции, до любых
чтений и внешних вызовов.

Роли:
- ADMIN: выдаёт и отзывает роли
- RELAYER: close / propose / execute
- GUARDIAN: accept / cancel proposal
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Set

from settler.core.exceptions import Unauthorized
from settler.core.math.fixed_point import validate_address


class Role(str, Enum):
    ADMIN = "ADMIN"
    RELAYER = "RELAYER"
    GUARDIAN = "GUARDIAN"


@dataclass(frozen=True)
class AuthContext:
    """Вызывающий операции."""

    caller: str


class RoleBook:
    """Книга ролей: адрес → набор ролей."""

    def __init__(self, admin: str):
        validate_address(admin, "admin")
        self._roles: Dict[str, Set[Role]] = {admin: {Role.ADMIN}}

    def has_role(self, account: str, role: Role) -> bool:
        return role in self._roles.get(account, set())

    def require(self, ctx: AuthContext, role: Role) -> None:
        """
        Raises:
            Unauthorized: Если у ctx.caller нет роли role
        """
        if not self.has_role(ctx.caller, role):
            raise Unauthorized(ctx.caller, role.value)

    def grant(self, ctx: AuthContext, account: str, role: Role) -> None:
        self.require(ctx, Role.ADMIN)
        validate_address(account, "account")
        self._roles.setdefault(account, set()).add(role)

    def revoke(self, ctx: AuthContext, account: str, role: Role) -> None:
        self.require(ctx, Role.ADMIN)
        self._roles.get(account, set()).discard(role)
