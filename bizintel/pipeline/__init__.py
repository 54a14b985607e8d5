"""
Prediction Pipeline Module
"""
from .recorder import ModelKind, PredictionRecorder
from .runner import (
    PipelineError,
    PipelineResult,
    PredictionPipeline,
    overall_confidence,
)

__all__ = [
    "ModelKind",
    "PredictionRecorder",
    "PipelineError",
    "PipelineResult",
    "PredictionPipeline",
    "overall_confidence",
]
