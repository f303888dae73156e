"""Orchestrator package - coordinates upload workflows."""
from .core import UploadOrchestrator
from .models import MultipartSession, PartRange
from .parallel import plan_parts

__all__ = ["UploadOrchestrator", "MultipartSession", "PartRange", "plan_parts"]
