"""
Individual learning objective model
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ObjectiveStatus(str, Enum):
    """Lifecycle of a learning objective"""
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    REVISED = "revised"

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]


class LearningObjective(BaseModel):
    """
    One student's personal goal within one project.

    Every field has a default: this is the candidate shape handed to the
    IntegrityValidator, which reports missing or out-of-range values as
    validation errors instead of letting parsing fail. Keys that are not
    declared here are kept in model_extra.
    """
    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: Optional[str] = None
    student_id: Optional[str] = None
    project_id: Optional[str] = None
    team_id: Optional[str] = Field(
        default=None, description="Informational only, never grants access"
    )
    objective_description: Optional[str] = None
    competency_level: Optional[int] = Field(default=None, description="Target level 1-5")
    progress_status: str = ObjectiveStatus.DRAFT.value
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
