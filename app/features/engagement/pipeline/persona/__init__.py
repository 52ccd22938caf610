from .classifier import PERSONA_RULES, classify_persona

__all__ = ["PERSONA_RULES", "classify_persona"]
