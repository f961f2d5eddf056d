"""
Style prompt templates.

Styles are identified by ID. Unknown styles fall back to a generic
template so new client-side styles work before they are tuned here.
"""

_CHARACTER = (
    "The character must match the person in the uploaded reference image, "
    "keeping their facial features, hair style and skin tone."
)
_BACKGROUND = "Plain solid white #FFFFFF background only."
_OUTLINE = "Use a die-cut outline shape rather than a square or circle."

STYLE_DESCRIPTIONS = {
    "pop-art": (
        "in the Pop Art style with bold black outlines, a flat vibrant palette "
        "and Ben-Day dot shading"
    ),
    "claymation": "in the style of a classic claymation character sculpted from clay",
    "cartoon-dino": "as a cute anthropomorphized cartoon dinosaur with bright colors",
    "pixel-art": "as colorful retro pixel art with 8-bit and glitch elements",
    "royal": "as cartoon royalty surrounded by unicorns, rainbows and playing-card suits",
    "football-sticker": "in the style of a vintage 1970s soccer trading card",
    "vintage-bollywood": "as a 1960s retro Bollywood poster",
    "japanese-matchbox": "in Japanese Showa-era matchbox label art with a two-color print style",
    "sticker-bomb": "in a stickerbomb style surrounded by colorful graphic stickers",
}


def build_style_prompt(style_id: str, emotion: str) -> str:
    """Build the full prompt sent with the source image."""
    style = STYLE_DESCRIPTIONS.get(style_id, f"in a {style_id} style")
    return (
        f"Create a single sticker {style}, based on the uploaded photo. "
        f"The character must express the emotion: '{emotion}'. "
        f"{_CHARACTER} {_OUTLINE} {_BACKGROUND}"
    )
