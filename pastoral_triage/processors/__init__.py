"""Email processors."""

from .base import BaseProcessor
from .triage import PipelineConfig, TriageProcessor, get_processor, set_processor

__all__ = ["BaseProcessor", "PipelineConfig", "TriageProcessor", "get_processor", "set_processor"]
