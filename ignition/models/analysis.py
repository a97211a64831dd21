"""
Result model for AI pull request analysis.
"""

from typing import List

from pydantic import BaseModel, Field

from .entities import ConfigurationItem, Requirement, Risk


class PrAnalysisResult(BaseModel):
    """Summary of a pull request and the project entities it touches.

    Linked entities are always drawn from the project, never from the
    model's raw output.
    """

    summary: str
    suggested_commit_message: str
    linked_requirements: List[Requirement] = Field(default_factory=list)
    linked_cis: List[ConfigurationItem] = Field(default_factory=list)
    linked_risks: List[Risk] = Field(default_factory=list)
