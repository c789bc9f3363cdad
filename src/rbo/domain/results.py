from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from rbo.domain.models import ParsedLineItem


@dataclass(frozen=True)
class Parsed:
    items: list[ParsedLineItem]


@dataclass(frozen=True)
class Empty:
    """Document was read fine but holds no importable lines."""

    reason: str


@dataclass(frozen=True)
class ParseError:
    reason: str


ExtractionResult = Union[Parsed, Empty, ParseError]


def items_of(result: ExtractionResult) -> list[ParsedLineItem]:
    if isinstance(result, Parsed):
        return list(result.items)
    return []


def parsed_or_empty(items: list[ParsedLineItem], reason: str) -> ExtractionResult:
    return Parsed(items) if items else Empty(reason)
