"""Deterministic, theme-aware colors for chart category labels.

Resolution order for :func:`compute_color_for_label`:

1. an explicit override (exact label, then lowercase, then strict form),
   accepted only when it is a visible color;
2. the theme's semantic dictionary (``yes``/``no``, ``high``/``low``, ...);
3. the theme's neutral gray when the field is in neutral mode;
4. a palette slot picked from a 32-bit polynomial hash of the label plus a
   caller supplied salt.

The palette slot depends only on the label, the salt and the palette length,
never on the theme, so a category keeps its identity across theme toggles.
"""

from __future__ import annotations

import re
from typing import Mapping

from survey_insights.services.palettes import DEFAULT_SCHEME, ColorScheme

_INVISIBLE_TOKENS = frozenset({"", "transparent", "none", "inherit", "#0000"})
_HEX4 = re.compile(r"^#[0-9a-f]{4}$")
_HEX8 = re.compile(r"^#[0-9a-f]{8}$")
_ALPHA_FUNCTION = re.compile(r"^(rgba|hsla)\(")
_FUNCTION_ARGS = re.compile(r"^.*\((.*)\)$", re.DOTALL)
_LEADING_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_STRICT_SEPARATORS = re.compile(r"[^a-z0-9]+")
# Used only when a substituted scheme has an invisible palette slot and gray.
_LAST_RESORT_COLOR = "#9ca3af"


def normalize_key(value: object) -> str:
    """Lowercase, trimmed string form of ``value`` (``None`` becomes ``""``)."""

    if value is None:
        return ""
    return str(value).strip().lower()


def normalize_strict(value: object) -> str:
    """:func:`normalize_key` with every run of non-alphanumerics turned into ``-``."""

    return _STRICT_SEPARATORS.sub("-", normalize_key(value))


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_units(text: str):
    encoded = text.encode("utf-16-le", "surrogatepass")
    for offset in range(0, len(encoded), 2):
        yield encoded[offset] | (encoded[offset + 1] << 8)


def string_hash(text: str) -> int:
    """Signed 32-bit ``hash * 31 + code_unit`` over the UTF-16 code units of ``text``."""

    value = 0
    for unit in _utf16_units(text):
        value = _to_int32(value * 31 + unit)
    return value


def hash_salt_from(text: str) -> int:
    """Return a non-negative salt for ``text``, e.g. a field id."""

    return abs(string_hash(text or ""))


def palette_index_for(label: str, salt: int, palette_size: int) -> int:
    if palette_size <= 0:
        raise ValueError("palette_size must be a positive integer")
    return abs(string_hash(label) + salt) % palette_size


def palette_color_for(
    label: str,
    salt: int = 0,
    *,
    is_dark_mode: bool = False,
    scheme: ColorScheme = DEFAULT_SCHEME,
) -> str:
    palette = scheme.theme(is_dark_mode).palette
    return palette[palette_index_for(label, salt, len(palette))]


def _alpha_component(lower: str) -> float | None:
    match = _FUNCTION_ARGS.match(lower)
    inner = match.group(1) if match else lower
    last = inner.split(",")[-1].strip()
    number = _LEADING_NUMBER.match(last)
    if number is None:
        return None
    return float(number.group(0))


def is_transparent_token(value: str | None) -> bool:
    """Return True when ``value`` would render as nothing."""

    if value is None:
        return True
    lower = value.strip().lower()
    if lower in _INVISIBLE_TOKENS:
        return True
    if _HEX4.match(lower) and lower[-1] == "0":
        return True
    if _HEX8.match(lower) and lower[-2:] == "00":
        return True
    if _ALPHA_FUNCTION.match(lower):
        alpha = _alpha_component(lower)
        if alpha is not None and alpha <= 0:
            return True
    return False


def normalize_color_candidate(candidate: str | None, named_colors: Mapping[str, str] | None = None) -> str | None:
    """Trim ``candidate`` and replace a known named token with its hex value."""

    if not candidate:
        return None
    cleaned = candidate.strip()
    if not cleaned:
        return None
    if named_colors:
        return named_colors.get(cleaned.lower(), cleaned)
    return cleaned


def normalize_effective_color(
    candidate: str | None,
    *,
    is_dark_mode: bool = False,
    scheme: ColorScheme = DEFAULT_SCHEME,
) -> str | None:
    """Return a renderable color for ``candidate`` or ``None`` when it is invisible."""

    color = normalize_color_candidate(candidate, scheme.theme(is_dark_mode).named_colors)
    if color is None or is_transparent_token(color):
        return None
    return color


def semantic_color_for(
    lowercase_label: str,
    *,
    is_dark_mode: bool = False,
    scheme: ColorScheme = DEFAULT_SCHEME,
) -> str | None:
    return scheme.theme(is_dark_mode).semantic_colors.get(lowercase_label)


def _lookup_override(override_map: Mapping[str, str | None] | None, *keys: str) -> str | None:
    if not override_map:
        return None
    for key in keys:
        candidate = override_map.get(key)
        if candidate is not None:
            return candidate
    return None


def compute_color_for_label(
    label: str,
    *,
    lowercase_label: str | None = None,
    normalized_label: str | None = None,
    override_map: Mapping[str, str | None] | None = None,
    neutral_mode: bool = False,
    color_salt: int = 0,
    is_dark_mode: bool = False,
    scheme: ColorScheme = DEFAULT_SCHEME,
) -> str:
    """Return the visible color used to draw ``label``.

    ``lowercase_label`` and ``normalized_label`` default to
    :func:`normalize_key` and :func:`normalize_strict` of ``label``. An
    override that resolves to an invisible color is ignored and resolution
    continues with the semantic dictionary.
    """

    label = "" if label is None else str(label)
    lower = lowercase_label if lowercase_label is not None else normalize_key(label)
    strict = normalized_label if normalized_label is not None else normalize_strict(label)
    theme = scheme.theme(is_dark_mode)
    salt = color_salt or 0

    chosen = normalize_effective_color(
        _lookup_override(override_map, label, lower, strict),
        is_dark_mode=is_dark_mode,
        scheme=scheme,
    )
    if chosen is None:
        chosen = semantic_color_for(lower, is_dark_mode=is_dark_mode, scheme=scheme)
    if chosen is None and neutral_mode:
        chosen = theme.neutral_gray
    if chosen is None:
        chosen = palette_color_for(label, salt, is_dark_mode=is_dark_mode, scheme=scheme)

    if is_transparent_token(chosen):
        fallback = palette_color_for(label, salt, is_dark_mode=is_dark_mode, scheme=scheme)
        chosen = theme.neutral_gray if neutral_mode or is_transparent_token(fallback) else fallback
    if is_transparent_token(chosen):
        chosen = _LAST_RESORT_COLOR
    return chosen


__all__ = [
    "compute_color_for_label",
    "hash_salt_from",
    "is_transparent_token",
    "normalize_color_candidate",
    "normalize_effective_color",
    "normalize_key",
    "normalize_strict",
    "palette_color_for",
    "palette_index_for",
    "semantic_color_for",
    "string_hash",
]
