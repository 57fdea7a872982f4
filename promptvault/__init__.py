"""
PromptVault: local-first prompt catalog with an optional remote backend.
"""

__version__ = "1.0.0"
