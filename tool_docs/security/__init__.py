"""Security module for tool-docs."""

from .validators import PathValidator
from .prompt_safety import PromptInjectionDetector

__all__ = ["PathValidator", "PromptInjectionDetector"]
