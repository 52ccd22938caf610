"""
Persona classification shared by synthesis and aggregation.

Rules are evaluated top to bottom; the first category whose count is strictly
greater than the text count decides the label.
"""

from app.models.domain.profile_domain import ContentTypeDistribution, Persona

PERSONA_RULES: tuple[tuple[str, Persona], ...] = (
    ("voice", Persona.PODCASTER),
    ("sticker", Persona.STICKER_ENTHUSIAST),
    ("photo", Persona.PAPARAZZI),
    ("video", Persona.STORYTELLER),
)


def classify_persona(distribution: ContentTypeDistribution, is_premium_tier: bool = False) -> Persona:
    # is_premium_tier is part of the contract but no current rule reads it.
    text = distribution.text
    for category, persona in PERSONA_RULES:
        if getattr(distribution, category) > text:
            return persona
    return Persona.TEXTER
