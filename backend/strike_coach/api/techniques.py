"""Technique reference API endpoints."""

from typing import List

from fastapi import APIRouter, HTTPException, status

from strike_coach.engine.reference_matcher import TECHNIQUE_REFERENCES, get_reference
from strike_coach.engine.strikes import StrikeType
from strike_coach.schemas.technique import TechniqueReferenceResponse

router = APIRouter()


@router.get("", response_model=List[TechniqueReferenceResponse])
async def list_techniques():
    """All techniques that have a reference profile."""
    return [
        TechniqueReferenceResponse.model_validate(reference.to_dict())
        for reference in TECHNIQUE_REFERENCES.values()
    ]


@router.get("/{technique}", response_model=TechniqueReferenceResponse)
async def get_technique(technique: str):
    """Reference profile of one technique (e.g. ``jab``)."""
    try:
        reference = get_reference(StrikeType(technique))
    except ValueError:
        reference = None

    if reference is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No reference profile for technique: {technique}"
        )
    return TechniqueReferenceResponse.model_validate(reference.to_dict())
