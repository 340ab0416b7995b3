"""
Theme registry.

Themes are opaque to the pipeline: a share link only carries the theme id, and
resolving an id always yields a usable theme.
"""

from .models import Theme

DEFAULT_THEME_ID = "ocean"

THEMES: dict[str, Theme] = {
    theme.id: theme
    for theme in (
        Theme(
            id="cityscape",
            name="Cityscape",
            description="Urban geometry with neon accents. Your listening as a bustling metropolis.",
        ),
        Theme(
            id="futuristic",
            name="Futuristic",
            description="Holographic and sleek. Your music as cutting-edge technology.",
        ),
        Theme(
            id="ocean",
            name="Ocean",
            description="Flowing blues and teals. Your listening as waves and currents.",
        ),
        Theme(
            id="minimalistic",
            name="Minimalistic Modern Art",
            description="Clean lines and breathing space. Your music distilled to essence.",
        ),
        Theme(
            id="sparkly_space",
            name="Sparkly Space",
            description="Cosmic wonder with glitter and stars. Your music as the universe.",
        ),
        Theme(
            id="girly_pink",
            name="Girly Pink Pastel Flowers",
            description="Soft, dreamy, and floral. Your music as a flower garden in spring.",
        ),
    )
}


def default_theme() -> Theme:
    return THEMES[DEFAULT_THEME_ID]


def resolve_theme(skin_id: str | None) -> Theme:
    """Look up a theme by id, falling back to the default theme on a miss."""
    if skin_id is None:
        return default_theme()
    return THEMES.get(skin_id, default_theme())


def all_themes() -> list[Theme]:
    return list(THEMES.values())
