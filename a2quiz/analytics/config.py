from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ReadinessConfig(BaseModel):
    """Hyperparameters for the chapter readiness score.

    - k: smoothing constant for reliability = 1 - exp(-attempts / k) (>0)
    - w_accuracy, w_coverage, w_reliability: blend weights
    - accuracy_floor: share of accuracy kept when reliability is 0
    """

    k: float = Field(30.0, gt=0)
    w_accuracy: float = Field(0.55, ge=0)
    w_coverage: float = Field(0.35, ge=0)
    w_reliability: float = Field(0.10, ge=0)
    accuracy_floor: float = Field(0.5, ge=0, le=1)

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]]) -> "ReadinessConfig":
        stats = (cfg or {}).get("stats", {}) or {}
        if stats.get("readiness_k") is None:
            return cls()
        return cls(k=float(stats["readiness_k"]))
