"""Alias reference extraction.

A token value aliases another token by embedding its dotted path in braces,
e.g. ``"{color.blue.600}"``. Composite values (shadows, typography objects,
lists) may carry aliases anywhere inside them, so extraction descends through
dicts and lists and yields one edge per alias occurrence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from dtm.tokens.tree import flatten

ALIAS_PATTERN = re.compile(r"\{([^{}]+)\}")


@dataclass(frozen=True)
class ReferenceEdge:
    """``owner`` token aliases the token at ``target``."""

    owner: str
    target: str
    raw: str  # the alias text as written, braces included


def find_references(value: Any) -> Iterator[tuple[str, str]]:
    """Yield ``(target, raw)`` for every alias inside ``value``."""
    if isinstance(value, str):
        for match in ALIAS_PATTERN.finditer(value):
            yield match.group(1).strip(), match.group(0)
    elif isinstance(value, dict):
        for item in value.values():
            yield from find_references(item)
    elif isinstance(value, list):
        for item in value:
            yield from find_references(item)


def collect_edges(tokens: Mapping[str, dict]) -> list[ReferenceEdge]:
    """Build the reference edge list for a flat ``{path: token}`` namespace."""
    edges: list[ReferenceEdge] = []
    for owner, token in tokens.items():
        for target, raw in find_references(token.get("$value")):
            edges.append(ReferenceEdge(owner=owner, target=target, raw=raw))
    return edges


def extract_reference_edges(tree: dict) -> list[ReferenceEdge]:
    """Edge list for a nested token tree."""
    return collect_edges(flatten(tree))
