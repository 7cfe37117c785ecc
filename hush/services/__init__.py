"""Service modules"""
from .orchestrator import ActionOrchestrator

__all__ = ["ActionOrchestrator"]
