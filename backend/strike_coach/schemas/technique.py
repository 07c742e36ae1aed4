"""Technique reference schemas."""

from typing import List, Dict
from pydantic import BaseModel


class FormCheckResponse(BaseModel):
    name: str
    feedback: str


class TechniqueReferenceResponse(BaseModel):
    """Canonical profile of a technique, as used by the reference matcher."""
    type: str
    side: str
    expected_parameters: Dict[str, float]
    form_checks: List[FormCheckResponse]
