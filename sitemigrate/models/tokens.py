from typing import Dict, List

from pydantic import BaseModel, Field

DEFAULT_BREAKPOINTS = {
    "sm": "640px",
    "md": "768px",
    "lg": "1024px",
    "xl": "1280px",
    "2xl": "1536px",
}


class FontTokens(BaseModel):
    families: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    weights: List[str] = Field(default_factory=list)


class DesignTokens(BaseModel):
    colors: Dict[str, str] = Field(default_factory=dict)
    """Colour name -> CSS value, as found in section styles."""
    fonts: FontTokens = Field(default_factory=FontTokens)
    spacing: List[str] = Field(default_factory=list)
    breakpoints: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_BREAKPOINTS))
