"""
Domain models for individual assessment

Provides:
- LearningObjective: a student's personal goal within a project
- EvidenceArtifact: proof of progress tied to one objective
- IndividualAssessment: an educator's evaluation of one objective
- Identity / UserRole: who is asking and in which role
"""
from .user import UserRole, Identity
from .objective import LearningObjective, ObjectiveStatus
from .evidence import EvidenceArtifact, EvidenceType
from .assessment import (
    IndividualAssessment,
    AssessmentStatus,
    CompetencyFramework,
    CompetencyArea,
    AssessmentCriteria,
    CompetencyLevelDescriptor,
)

__all__ = [
    "UserRole",
    "Identity",
    "LearningObjective",
    "ObjectiveStatus",
    "EvidenceArtifact",
    "EvidenceType",
    "IndividualAssessment",
    "AssessmentStatus",
    "CompetencyFramework",
    "CompetencyArea",
    "AssessmentCriteria",
    "CompetencyLevelDescriptor",
]
