from typing import List

from pydantic import BaseModel, Field

from .mockup import BackgroundStyle, MockupSettings


class AnalyzeResponse(BaseModel):
    """Suggested settings inferred from a screenshot"""

    settings: MockupSettings
    strategy: str
    tagline: str
    suggested_backgrounds: List[BackgroundStyle] = []
    app_category: str
    target_audience: str
    detected_colors: List[str] = []
    conversion_score: int = Field(..., ge=0, le=100)
    suggested_props: List[str] = []
    # True when the model call failed and fixed defaults were returned
    degraded: bool = False
