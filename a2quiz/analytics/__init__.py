from .config import ReadinessConfig
from .metrics import compute_readiness, weighted_exam_score
from .plots import plot_exam_trend, plot_weekday_activity, plot_activity_grid, plot_chapter_readiness

__all__ = [
    "ReadinessConfig",
    "compute_readiness",
    "weighted_exam_score",
    "plot_exam_trend",
    "plot_weekday_activity",
    "plot_activity_grid",
    "plot_chapter_readiness",
]
