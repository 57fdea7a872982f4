"""
SQLAlchemy models for PromptVault.

This module exports all database models for easy import.
"""

from .prompt import Prompt
from .category import Category
from .group import Group
from .management_prompt import ManagementPrompt
from .prompt_result import PromptResult

__all__ = [
    "Prompt",
    "Category",
    "Group",
    "ManagementPrompt",
    "PromptResult",
]
