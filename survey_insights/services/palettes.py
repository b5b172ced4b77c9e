"""Color tables used to paint chart categories.

Each :class:`ColorTheme` bundles one theme's palette, named-color tokens,
semantic dictionary and neutral gray. A :class:`ColorScheme` pairs a light and
a dark theme whose palettes have the same length, so a label keeps its palette
slot when the UI toggles between themes. Both are immutable and can be passed
to the resolver and the chart builder in place of the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple


def _freeze(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({key.strip().lower(): value for key, value in mapping.items()})


@dataclass(frozen=True)
class ColorTheme:
    name: str
    palette: Tuple[str, ...]
    named_colors: Mapping[str, str]
    semantic_colors: Mapping[str, str]
    neutral_gray: str
    surface: str = "#ffffff"

    def __post_init__(self) -> None:
        if not self.palette:
            raise ValueError("palette must contain at least one color")
        object.__setattr__(self, "palette", tuple(self.palette))
        object.__setattr__(self, "named_colors", _freeze(self.named_colors))
        object.__setattr__(self, "semantic_colors", _freeze(self.semantic_colors))


@dataclass(frozen=True)
class ColorScheme:
    light: ColorTheme
    dark: ColorTheme

    def __post_init__(self) -> None:
        if len(self.light.palette) != len(self.dark.palette):
            raise ValueError("light and dark palettes must have the same length")

    def theme(self, is_dark_mode: bool = False) -> ColorTheme:
        return self.dark if is_dark_mode else self.light

    @property
    def palette_size(self) -> int:
        return len(self.light.palette)


def _semantic(*, red: str, amber: str, green: str, gray: str, blue: str) -> dict[str, str]:
    return {
        "critical": red,
        "high": red,
        "very high": red,
        "medium": amber,
        "moderate": amber,
        "low": green,
        "very low": green,
        "yes": green,
        "true": green,
        "no": red,
        "false": red,
        "not important": gray,
        "not-important": gray,
        "none": gray,
        "n/a": gray,
        "both": blue,
        "mixed": blue,
    }


LIGHT_THEME = ColorTheme(
    name="light",
    palette=(
        "#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6",
        "#14b8a6", "#f97316", "#0ea5e9", "#84cc16", "#a855f7",
    ),
    named_colors={
        "green-light": "#10b981",
        "blue-light": "#3b82f6",
        "yellow-light": "#f59e0b",
        "red-light": "#ef4444",
        "purple-light": "#8b5cf6",
        "orange-light": "#f97316",
        "pink-light": "#ec4899",
        "cyan-light": "#06b6d4",
        "lime-light": "#84cc16",
        "indigo-light": "#6366f1",
    },
    semantic_colors=_semantic(red="#ef4444", amber="#f59e0b", green="#16a34a", gray="#6b7280", blue="#0ea5e9"),
    neutral_gray="#9ca3af",
    surface="#ffffff",
)

# Same slots as the light palette, one step lighter for dark backgrounds.
DARK_THEME = ColorTheme(
    name="dark",
    palette=(
        "#60a5fa", "#34d399", "#fbbf24", "#f87171", "#a78bfa",
        "#2dd4bf", "#fb923c", "#38bdf8", "#a3e635", "#c084fc",
    ),
    named_colors={
        "green-light": "#34d399",
        "blue-light": "#60a5fa",
        "yellow-light": "#fbbf24",
        "red-light": "#f87171",
        "purple-light": "#a78bfa",
        "orange-light": "#fb923c",
        "pink-light": "#f472b6",
        "cyan-light": "#22d3ee",
        "lime-light": "#a3e635",
        "indigo-light": "#818cf8",
    },
    semantic_colors=_semantic(red="#f87171", amber="#fbbf24", green="#22c55e", gray="#9ca3af", blue="#38bdf8"),
    neutral_gray="#6b7280",
    surface="#1f2937",
)

DEFAULT_SCHEME = ColorScheme(light=LIGHT_THEME, dark=DARK_THEME)

# Field types and label/id fragments that suggest free-form answers.
FREE_TEXT_FIELD_TYPES = frozenset({"free_text", "text", "textarea", "email", "name", "phone", "url"})
FREE_TEXT_PATTERN = (
    r"(name|email|e-mail|phone|title|company|organization|org|dept|department|address|city|state|country)"
)


__all__ = [
    "ColorScheme",
    "ColorTheme",
    "DARK_THEME",
    "DEFAULT_SCHEME",
    "FREE_TEXT_FIELD_TYPES",
    "FREE_TEXT_PATTERN",
    "LIGHT_THEME",
]
