"""
signtext package – live hand-sign → text.

Exposes the main pipeline components:
    HandTracker        – MediaPipe single-hand landmark extractor
    SignTextPipeline   – presence, crop, idle-spacing and accumulation state
    ClassifierClient   – HTTP client for the remote symbol classifier
    SamplingRunner     – idle / sampling timers around a pipeline
"""

from .classifier_client import ClassifierClient, ClassifierError
from .config import PipelineConfig
from .pipeline import SignTextPipeline
from .scheduler import SamplingRunner
from .vision_tracker import HandTracker

__all__ = [
    "ClassifierClient",
    "ClassifierError",
    "HandTracker",
    "PipelineConfig",
    "SamplingRunner",
    "SignTextPipeline",
]
