"""
Database package for PBLab

Provides:
- SQLAlchemy database configuration
- Database session management
- Base model for ORM
- ORM models (LearningObjectiveDB, EvidenceArtifactDB, etc.)
- Repository pattern implementations
"""
from .config import DatabaseConfig, get_db, get_db_session, init_database, get_db_config
from .base import Base

# ORM Models
from .models import (
    UserProfileDB,
    CourseDB,
    ProjectDB,
    LearningObjectiveDB,
    EvidenceArtifactDB,
    IndividualAssessmentDB,
)

# Repositories
from .repositories import (
    UserProfileRepository,
    CourseRepository,
    ProjectRepository,
    ObjectiveRepository,
    EvidenceRepository,
    AssessmentRepository,
)

__all__ = [
    # Configuration
    "DatabaseConfig",
    "get_db",
    "get_db_session",
    "init_database",
    "get_db_config",
    "Base",
    # ORM Models
    "UserProfileDB",
    "CourseDB",
    "ProjectDB",
    "LearningObjectiveDB",
    "EvidenceArtifactDB",
    "IndividualAssessmentDB",
    # Repositories
    "UserProfileRepository",
    "CourseRepository",
    "ProjectRepository",
    "ObjectiveRepository",
    "EvidenceRepository",
    "AssessmentRepository",
]
