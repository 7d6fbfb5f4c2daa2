"""Nested token-tree helpers.

Token files are W3C DTCG-style JSON: groups are plain objects, and a token
is any object carrying a ``$value`` key (``$type`` and ``$description`` are
optional). Tokens are addressed by dotted path, e.g. ``color.brand.primary``.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional


def is_token(node: Any) -> bool:
    return isinstance(node, dict) and "$value" in node


def split_path(token_path: str) -> list[str]:
    """Split a dotted path, rejecting empty segments (``a..b``, ``.a``)."""
    keys = token_path.split(".") if token_path else []
    if not keys or any(not k for k in keys):
        raise ValueError(f"Invalid token path: {token_path!r}")
    return keys


def set_at_path(tree: dict, token_path: str, value: Any) -> None:
    """Set ``value`` at ``token_path``, creating intermediate groups.

    A non-object found on the way is replaced by an empty group.
    """
    keys = split_path(token_path)
    node = tree
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


def delete_at_path(tree: dict, token_path: str) -> bool:
    """Remove the key at ``token_path``. Returns True if something was removed."""
    keys = split_path(token_path)
    node: Any = tree
    for key in keys[:-1]:
        node = node.get(key) if isinstance(node, dict) else None
        if not isinstance(node, dict):
            return False
    if keys[-1] in node:
        del node[keys[-1]]
        return True
    return False


def get_at_path(tree: dict, token_path: str) -> Optional[Any]:
    node: Any = tree
    for key in split_path(token_path):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def iter_tokens(tree: Any, prefix: tuple[str, ...] = ()) -> Iterator[tuple[str, dict]]:
    """Yield ``(dotted_path, token)`` for every token in ``tree``.

    Descent stops at a token: nested keys inside a token object (composite
    values, ``$extensions``) belong to that token.
    """
    if not isinstance(tree, dict):
        return
    for key, val in tree.items():
        path = prefix + (key,)
        if is_token(val):
            yield ".".join(path), val
        elif isinstance(val, dict) and not key.startswith("$"):
            yield from iter_tokens(val, path)


def to_dtcg(token: dict) -> dict:
    """Normalise a token to the export shape ``{$value, $type, $description?}``."""
    out = {"$value": token["$value"], "$type": token.get("$type") or "other"}
    if token.get("$description"):
        out["$description"] = token["$description"]
    return out


def flatten(tree: Any, out: Optional[dict[str, dict]] = None) -> dict[str, dict]:
    """Flatten ``tree`` into ``{dotted_path: dtcg_token}``; later calls override."""
    if out is None:
        out = {}
    for path, token in iter_tokens(tree):
        out[path] = to_dtcg(token)
    return out
