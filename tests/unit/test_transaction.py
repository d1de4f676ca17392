"""
Тесты AtomicSection

Coverage:
- Rollback всех участников при исключении
- Вложенные секции: snapshot только на внешнем уровне
- Регистрация только Transactional участников
"""

import pytest

from settler.core.transaction import AtomicSection, SnapshotMixin, Transactional


class Counter(SnapshotMixin):
    _state_fields = ("value", "history")

    def __init__(self):
        self.value = 0
        self.history = []

    def bump(self, amount=1):
        self.value += amount
        self.history.append(amount)


class TestAtomicSection:
    """Тесты атомарной секции."""

    def setup_method(self):
        self.section = AtomicSection()
        self.first = Counter()
        self.second = Counter()
        self.section.register(self.first)
        self.section.register(self.second)

    def test_commit(self):
        with self.section.atomic("commit"):
            self.first.bump()
            self.second.bump(5)
        assert (self.first.value, self.second.value) == (1, 5)

    def test_rollback_restores_all_participants(self):
        self.first.bump()
        with pytest.raises(RuntimeError, match="boom"):
            with self.section.atomic("failing"):
                self.first.bump(10)
                self.second.bump(3)
                raise RuntimeError("boom")
        assert self.first.value == 1
        assert self.first.history == [1]
        assert self.second.value == 0

    def test_nested_failure_rolls_back_outer_work(self):
        with pytest.raises(ValueError):
            with self.section.atomic("outer"):
                self.first.bump()
                with self.section.atomic("inner"):
                    self.second.bump()
                    raise ValueError("inner failed")
        assert (self.first.value, self.second.value) == (0, 0)

    def test_caught_inner_failure_keeps_state(self):
        """Внутренняя секция не откатывает сама: это делает только внешняя"""
        with self.section.atomic("outer"):
            self.first.bump()
            try:
                with self.section.atomic("inner"):
                    self.second.bump()
                    raise ValueError("inner failed")
            except ValueError:
                pass
        assert (self.first.value, self.second.value) == (1, 1)

    def test_active_flag(self):
        assert not self.section.active
        with self.section.atomic():
            assert self.section.active
        assert not self.section.active

    def test_register_is_idempotent(self):
        self.section.register(self.first)
        assert len(self.section.participants) == 2

    def test_register_rejects_non_transactional(self):
        with pytest.raises(TypeError):
            self.section.register(object())

    def test_counter_is_transactional(self):
        assert isinstance(Counter(), Transactional)
