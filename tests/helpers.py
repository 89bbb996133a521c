"""Shared test helpers for the spanrender test suite."""

from __future__ import annotations

import textwrap

FIZZBUZZ = textwrap.dedent(
    """\
    module FizzBuzz where

    fizz₁ : Nat → String
    fizz₁ num = case (mod num 5) (mod num 3) of
        0 0 => "FizzBuzz"
        0 _ => "Fizz"
        _ 0 => "Buzz"
        _ _ => num

    fizz₂ : Nat → String
    fizz₂ num =
        case (mod num 5) (mod num 3) of
            0 0 => "FizzBuzz"
            0 _ => "Fizz"
            _ 0 => "Buzz"
            _ _ => num
    """
)


def span_of(source: str, needle: str, occurrence: int = 1) -> tuple[int, int]:
    """Byte range of the n-th occurrence of ``needle`` in ``source``."""
    data = source.encode("utf-8")
    target = needle.encode("utf-8")
    pos = -1
    for _ in range(occurrence):
        pos = data.index(target, pos + 1)
    return pos, pos + len(target)


class Collector:
    """An output sink that records every call it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[object, bytes]] = []

    def __call__(self, context: object, data: bytes) -> None:
        self.calls.append((context, data))

    @property
    def text(self) -> str:
        assert len(self.calls) == 1
        return self.calls[0][1].decode("utf-8")
