"""
Pydantic schema for the one-shot embedded to remote migration report.
"""

from typing import List

from pydantic import BaseModel, Field


class MigrationResult(BaseModel):
    """Per-kind counts of records created in the target plus collected errors."""

    prompts: int = Field(0, description="Prompts migrated")
    categories: int = Field(0, description="Categories migrated")
    groups: int = Field(0, description="Groups migrated")
    management_prompts: int = Field(0, description="Management prompts migrated")
    prompt_results: int = Field(0, description="Prompt results migrated")
    errors: List[str] = Field(default_factory=list, description="Per-record failures")

    @property
    def total(self) -> int:
        return (
            self.prompts
            + self.categories
            + self.groups
            + self.management_prompts
            + self.prompt_results
        )
