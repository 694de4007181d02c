"""Models for spell-check suggestions."""

from typing import Literal

from pydantic import BaseModel

Language = Literal["pt", "en", "ja", "zh"]


class SpellError(BaseModel):
    """Single correction suggested by the language model."""

    original: str
    suggestion: str
    position: int = 0
    type: Literal["spelling", "punctuation", "grammar", "agreement"] = "spelling"
    context: str = ""
    explanation: str | None = None


class SpellCheckRequest(BaseModel):
    """Body of a spell-check request."""

    text: str = ""
    language: str = "pt"
