"""Concept image prompts and image encoding."""

from __future__ import annotations

import base64

from sparkgarden.agent.provider import ImageData
from sparkgarden.models import AspectRatio, Idea, ImageSize, ImageStyle

UI_FLOW_TEMPLATE = """\
High-fidelity professional UI design mockup for a mobile app.
Content: {prompt}.
Layout: a horizontal sequence of 5 mobile screens side by side, showing a \
cohesive user flow with transitions.
Style: modern, clean, portfolio presentation, sleek typography, high contrast, \
dark mode aesthetics if appropriate.
Resolution: 4k, highly detailed."""

STYLE_DEFAULTS: dict[ImageStyle, tuple[AspectRatio, ImageSize]] = {
    ImageStyle.ARTISTIC: (AspectRatio.SQUARE, ImageSize.ONE_K),
    ImageStyle.UI_FLOW: (AspectRatio.WIDE, ImageSize.TWO_K),
}


def build_image_prompt(idea: Idea, style: ImageStyle) -> str:
    """Base prompt from the idea's UI/UX section, or its first note."""
    context = idea.analysis.uiux or (idea.notes[0].text if idea.notes else "")
    if style == ImageStyle.UI_FLOW:
        return f'Screens for "{idea.title}". Context: {context}'
    return f'Concept art for "{idea.title}". Context: {context}. Artistic, detailed.'


def enrich_image_prompt(prompt: str, style: ImageStyle) -> str:
    if style == ImageStyle.UI_FLOW:
        return UI_FLOW_TEMPLATE.format(prompt=prompt)
    return prompt


def to_data_uri(image: ImageData) -> str:
    return f"data:{image.mime_type};base64,{base64.b64encode(image.data).decode('ascii')}"


def build_places_query(idea: Idea, with_location: bool) -> str:
    if with_location and idea.notes:
        return f"Find places related to: {idea.title}. {idea.notes[0].text}"
    return f"Find places related to: {idea.title}."
