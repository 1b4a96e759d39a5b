from typing import Any, Optional


class GradeEngineError(Exception):
    pass


class ConfigurationError(GradeEngineError):
    def __init__(self, reason: str, field: Optional[str] = None) -> None:
        message = f"{reason} ({field})" if field else reason
        super().__init__(message)
        self.reason = reason
        self.field = field


class ScoreIntegrityError(GradeEngineError):
    def __init__(self, component: str, score: Any, maximum: int) -> None:
        if maximum <= 0:
            message = f"{component} score {score} recorded for an unused component"
        else:
            message = f"{component} score {score} outside 0..{maximum}"
        super().__init__(message)
        self.component = component
        self.score = score
        self.maximum = maximum
