"""
Individual assessment model and competency framework

No team-scoped variant of any of these models exists.
Team-scoped keys sent by a client end up in model_extra, where the
IntegrityValidator looks for them.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssessmentStatus(str, Enum):
    """Review state of an assessment"""
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]


class CompetencyLevelDescriptor(BaseModel):
    """Description of one level (1-5) of a criterion"""
    model_config = ConfigDict(extra="allow")

    level: int
    description: str = ""
    individual_indicators: List[str] = Field(default_factory=list)


class CompetencyArea(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str = ""
    description: str = ""
    individual_criteria: List[str] = Field(default_factory=list)


class AssessmentCriteria(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    description: str = ""
    individual_weight: Optional[float] = None
    competency_levels: List[CompetencyLevelDescriptor] = Field(default_factory=list)


class CompetencyFramework(BaseModel):
    """Rubric attached to an assessment"""
    model_config = ConfigDict(extra="allow")

    competency_areas: List[CompetencyArea] = Field(default_factory=list)
    assessment_criteria: List[AssessmentCriteria] = Field(default_factory=list)


class IndividualAssessment(BaseModel):
    """An educator's evaluation of one student's achievement of one objective"""
    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: Optional[str] = None
    student_id: Optional[str] = None
    project_id: Optional[str] = None
    learning_objective_id: Optional[str] = None
    competency_achievement: Optional[int] = Field(default=None, description="Achieved level 1-5")
    assessment_score: Optional[float] = Field(default=None, description="Score 0-100")
    educator_feedback: Optional[str] = None
    assessed_by: Optional[str] = None
    assessment_date: Optional[datetime] = None
    status: str = AssessmentStatus.SUBMITTED.value
    competency_framework: Optional[CompetencyFramework] = None
