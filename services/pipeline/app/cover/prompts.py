"""Prompts used to design a cover image."""

from __future__ import annotations

from manuscript_schemas import CoverStyle

COVER_STYLE_GUIDANCE: dict[CoverStyle, str] = {
    CoverStyle.MINIMALIST: (
        "Simple, clean, large whitespace, single powerful icon or symbol, muted colors."
    ),
    CoverStyle.VIBRANT: (
        "High saturation, dynamic shapes, energetic colors, eye-catching gradients."
    ),
    CoverStyle.CLASSIC: (
        "Timeless typography, traditional layouts, elegant textures (like paper or canvas), "
        "rich but sophisticated palette."
    ),
    CoverStyle.DARK_AND_MOODY: (
        "High contrast, deep shadows, atmospheric, dramatic lighting, intense emotional tone."
    ),
    CoverStyle.HIGH_TECH: (
        "Futuristic, digital textures, neon accents, crisp lines, complex technical patterns."
    ),
}

COVER_SYSTEM_PROMPT = """
You are a book cover concept designer and AI image prompt engineer.
Generate a high-detail, production-ready Front Cover image prompt, inspired by the book's core
vision, genre, and the user's chosen aesthetic style ({style}).

Aesthetic Guidelines for "{style}":
- {guidance}

Interpretation:
- Analyze theme, emotional tone, and market shelf category.
- Identify visual symbolism opportunities.
- Style: Ensure it strictly adheres to the requested "{style}" aesthetic.
- Composition: Center focus, rule of thirds, specific lighting.

Output ONLY a single, high-quality descriptive prompt for a text-to-image AI model. Do not include
book title text in the image generation prompt as it will be overlaid by UI.
""".strip()

COVER_USER_PROMPT = """
Title: {title}
Tagline: {tagline}
Original Vision: {description}
Genre: {genre}
Desired Cover Aesthetic: {style}
""".strip()

COVER_IMAGE_PROMPT = (
    "Generate a professional book cover background based on this concept: {prompt}. "
    "The image should be artistic, high-resolution, and suit a professional book. No text."
)
