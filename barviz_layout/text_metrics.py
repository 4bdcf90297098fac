from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from PIL import ImageFont


DEFAULT_FONT_FAMILY = "DejaVu Sans"
SANS_FONT_FALLBACK_PATTERNS = (
    "dejavusans",
    "dejavu sans",
    "segoeui",
    "arial",
    "helvetica",
    "liberationsans",
    "freesans",
)


@dataclass(frozen=True)
class TextSize:
    width: float
    height: float


class TextMetrics(Protocol):
    def measure(self, text: str, font_family: str, font_size: float) -> TextSize: ...


class PillowTextMetrics:
    """Measures text with the first matching system font, falling back to Pillow's built-in font.

    Width is the ink extent of `text`; height is the font line height (ascent plus
    descent), so labels with and without descenders reserve the same space.
    """

    def measure(self, text: str, font_family: str, font_size: float) -> TextSize:
        font = _load_font(font_family=font_family, font_size_px=float(font_size))
        line_height = _line_height(font)
        if not text:
            return TextSize(width=0.0, height=float(line_height))
        left, _, right, _ = font.getbbox(text)
        return TextSize(width=float(max(0, right - left)), height=float(line_height))


def _line_height(font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> int:
    try:
        ascent, descent = font.getmetrics()
    except AttributeError:
        _, top, _, bottom = font.getbbox("Ag")
        return max(1, int(bottom - top))
    return max(1, int(ascent + descent))


@lru_cache(maxsize=64)
def _load_font(font_family: str, font_size_px: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(round(font_size_px)))
    font_path = _resolve_font_path(font_family)
    if font_path is None:
        return ImageFont.load_default(size=size)
    try:
        return ImageFont.truetype(str(font_path), size=size)
    except OSError:
        return ImageFont.load_default(size=size)


@lru_cache(maxsize=32)
def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.strip().lower() if font_family.strip() else DEFAULT_FONT_FAMILY.lower()
    patterns = (wanted,) + SANS_FONT_FALLBACK_PATTERNS

    font_dirs = [
        Path.home() / "Library" / "Fonts",
        Path("/Library/Fonts"),
        Path("/System/Library/Fonts"),
        Path("/System/Library/Fonts/Supplemental"),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path("C:/Windows/Fonts"),
    ]

    candidates: list[Path] = []
    for base in font_dirs:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(sorted(base.rglob(ext)))

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            if stem == p or stem.startswith(p + "-") or (p in stem and "mono" not in stem and "bold" not in stem):
                return path
    return None
