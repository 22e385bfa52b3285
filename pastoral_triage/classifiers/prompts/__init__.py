"""Prompt templates for the AI classifier."""

from .triage import PROMPT as TRIAGE_PROMPT

__all__ = ["TRIAGE_PROMPT"]
