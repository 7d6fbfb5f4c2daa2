"""Starter token sets for newly provisioned projects.

Every template produces the same three files so downstream tooling can rely
on them: ``color.json``, ``typography.json`` and ``spacing.json``. Values are
literal (no aliases) so a fresh project validates cleanly on its own.
"""

from __future__ import annotations

from typing import Any

DEFAULT_TEMPLATE = "product-ui"
REQUIRED_FILES = ("color.json", "typography.json", "spacing.json")


def _color(value: str, description: str = "") -> dict[str, Any]:
    token: dict[str, Any] = {"$value": value, "$type": "color"}
    if description:
        token["$description"] = description
    return token


def _dimension(value: str) -> dict[str, Any]:
    return {"$value": value, "$type": "dimension"}


def _minimal() -> dict[str, dict]:
    return {
        "color.json": {
            "color": {
                "brand": {"primary": _color("#2563EB", "Primary brand colour")},
                "text": {"default": _color("#111827")},
                "surface": {"default": _color("#FFFFFF")},
            }
        },
        "typography.json": {
            "font": {
                "family": {"body": {"$value": "Inter, sans-serif", "$type": "fontFamilies"}},
                "size": {"body": _dimension("16px")},
            }
        },
        "spacing.json": {
            "spacing": {"sm": _dimension("8px"), "md": _dimension("16px"), "lg": _dimension("24px")},
        },
    }


def _product_ui() -> dict[str, dict]:
    return {
        "color.json": {
            "color": {
                "brand": {
                    "primary": _color("#2563EB", "Primary actions and links"),
                    "secondary": _color("#7C3AED"),
                },
                "feedback": {
                    "success": _color("#16A34A"),
                    "warning": _color("#D97706"),
                    "danger": _color("#DC2626"),
                },
                "text": {"default": _color("#111827"), "muted": _color("#6B7280")},
                "surface": {"default": _color("#FFFFFF"), "raised": _color("#F9FAFB")},
            }
        },
        "typography.json": {
            "font": {
                "family": {
                    "body": {"$value": "Inter, sans-serif", "$type": "fontFamilies"},
                    "mono": {"$value": "JetBrains Mono, monospace", "$type": "fontFamilies"},
                },
                "weight": {
                    "regular": {"$value": 400, "$type": "fontWeights"},
                    "semibold": {"$value": 600, "$type": "fontWeights"},
                },
                "size": {"sm": _dimension("14px"), "body": _dimension("16px"), "lg": _dimension("20px")},
                "line-height": {"body": {"$value": 1.5, "$type": "lineHeights"}},
            }
        },
        "spacing.json": {
            "spacing": {
                "xs": _dimension("4px"),
                "sm": _dimension("8px"),
                "md": _dimension("16px"),
                "lg": _dimension("24px"),
                "xl": _dimension("32px"),
            },
            "radius": {"sm": {"$value": "4px", "$type": "borderRadius"}, "md": {"$value": "8px", "$type": "borderRadius"}},
        },
    }


def _editorial() -> dict[str, dict]:
    return {
        "color.json": {
            "color": {
                "brand": {"primary": _color("#B91C1C", "Masthead and highlights")},
                "text": {"default": _color("#1C1917"), "caption": _color("#57534E")},
                "surface": {"default": _color("#FFFBF5")},
            }
        },
        "typography.json": {
            "font": {
                "family": {
                    "heading": {"$value": "Playfair Display, serif", "$type": "fontFamilies"},
                    "body": {"$value": "Source Serif Pro, serif", "$type": "fontFamilies"},
                },
                "size": {"body": _dimension("18px"), "headline": _dimension("40px")},
                "line-height": {"body": {"$value": 1.7, "$type": "lineHeights"}},
            }
        },
        "spacing.json": {
            "spacing": {"sm": _dimension("12px"), "md": _dimension("24px"), "lg": _dimension("48px")},
        },
    }


TEMPLATES = {
    "minimal": _minimal,
    "product-ui": _product_ui,
    "editorial": _editorial,
}


def render_template(name: str) -> dict[str, dict]:
    """Return ``{filename: token_tree}`` for template ``name``.

    Raises KeyError for an unknown template.
    """
    return TEMPLATES[name]()
