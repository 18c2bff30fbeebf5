"""
Lazy sequence transformer with fused per-element stages.

map/filter/remove calls are recorded as tagged operations and evaluated
together, once per source element, when a terminal consumer pulls values.
reverse/take/drop act on the remaining source window only.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keep:
    """The element survived every stage, carrying its transformed value."""
    value: Any


class Skip:
    """The element was dropped by a filter stage."""
    __slots__ = ()

    def __repr__(self):
        return "SKIP"


SKIP = Skip()

Signal = Union[Keep, Skip]


def run_stage(ops, item) -> Signal:
    """Push one source element through every operation in ``ops``.

    Filters short-circuit: once an element is skipped no later operation
    sees it.
    """
    value = item
    for op, fn in ops:
        if op == "map":
            value = fn(value)
        elif op == "filter":
            if not fn(value):
                return SKIP
        elif fn(value):
            return SKIP
    return Keep(value)


class Transformer:
    """
    An immutable, lazily evaluated view over a finite source sequence.
    Every operation returns a new Transformer; nothing is computed until
    a terminal consumer (to_list, folds, any/all, aggregates) pulls values.
    """

    def __init__(self, items=(), ops=(), start=0, stop=None):
        self._items = items if isinstance(items, tuple) else tuple(items)
        self._ops = tuple(ops)         # sequence of ("map" | "filter" | "remove", callable)
        self._start = start
        self._stop = len(self._items) if stop is None else stop

    # --------- construction ----------
    @classmethod
    def singleton(cls, value):
        return cls((value,))

    @classmethod
    def from_list(cls, xs: Iterable[Any]) -> "Transformer":
        return cls(tuple(xs))

    # --------- composition (lazy, never touches items) ----------
    def map(self, fn: Callable[[Any], Any]) -> "Transformer":
        return self._with_op(("map", fn))

    def filter(self, pred: Callable[[Any], bool]) -> "Transformer":
        return self._with_op(("filter", pred))

    def remove(self, pred: Callable[[Any], bool]) -> "Transformer":
        return self._with_op(("remove", pred))

    @property
    def stage(self) -> Callable[[Any], Signal]:
        """The fused per-element function for the current chain."""
        ops = self._ops

        def _stage(item):
            return run_stage(ops, item)

        return _stage

    # --------- structural (act on the remaining source window) ----------
    def reverse(self) -> "Transformer":
        remaining = self._items[self._start:self._stop][::-1]
        return Transformer(remaining, self._ops)

    def take(self, n: int) -> "Transformer":
        n = max(int(n), 0)
        return self._with_window(self._start, min(self._start + n, self._stop))

    def drop(self, n: int) -> "Transformer":
        n = max(int(n), 0)
        return self._with_window(min(self._start + n, self._stop), self._stop)

    def page(self, page_number: int, page_size: int) -> "Transformer":
        """Get a 1-indexed page of the source window"""
        if page_number < 1:
            raise ValueError("Page number must be >= 1")
        if page_size < 0:
            raise ValueError("Page size must be >= 0")
        return self.drop((page_number - 1) * page_size).take(page_size)

    def is_empty(self) -> bool:
        return self._start >= self._stop

    # --------- extraction ----------
    def next(self) -> Tuple[Optional[Keep], "Transformer"]:
        """Return ``Keep(value)`` for the first surviving element and the
        transformer just past it.

        On exhaustion returns ``(None, rest)``; a kept ``None`` element comes
        back as ``Keep(None)``, so the two never collide.
        """
        items, ops = self._items, self._ops
        index, stop = self._start, self._stop
        while index < stop:
            signal = run_stage(ops, items[index])
            index += 1
            if signal is not SKIP:
                return signal, self._with_window(index, stop)
        if index == self._start:
            return None, self
        return None, self._with_window(index, stop)

    def __iter__(self):
        current = self
        while True:
            signal, current = current.next()
            if signal is None:
                logger.debug(f"Source exhausted at position {current._start}")
                return
            yield signal.value

    # --------- terminal consumers ----------
    def to_list(self) -> list:
        return list(self)

    def foldl(self, fn: Callable[[Any, Any], Any], seed):
        """Left fold; ``fn`` receives the element first, then the accumulator."""
        acc = seed
        for value in self:
            acc = fn(value, acc)
        return acc

    def foldr(self, fn: Callable[[Any, Any], Any], seed):
        """Right fold, ``fn(x1, fn(x2, ... fn(xn, seed)))``."""
        acc = seed
        for value in reversed(self.to_list()):
            acc = fn(value, acc)
        return acc

    def any(self, pred: Callable[[Any], bool]) -> bool:
        for value in self:
            if pred(value):
                return True
        return False

    def all(self, pred: Callable[[Any], bool]) -> bool:
        for value in self:
            if not pred(value):
                return False
        return True

    def sum(self):
        return self.foldl(lambda value, acc: acc + value, 0)

    def product(self):
        return self.foldl(lambda value, acc: acc * value, 1)

    def length(self) -> int:
        return self.foldl(lambda _, acc: acc + 1, 0)

    def first(self, default=None):
        """Return the first surviving element, or default if none survive"""
        signal, _ = self.next()
        if signal is None:
            return default
        return signal.value

    # --------- helpers ----------
    def _with_op(self, op_tuple):
        logger.debug(f"Composed {op_tuple[0]} stage, chain length {len(self._ops) + 1}")
        return Transformer(self._items, self._ops + (op_tuple,), self._start, self._stop)

    def _with_window(self, start, stop):
        return Transformer(self._items, self._ops, start, stop)

    def __repr__(self):
        names = ", ".join(op for op, _ in self._ops) or "identity"
        return f"Transformer(remaining={self._stop - self._start}, stages=[{names}])"
