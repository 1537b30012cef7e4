"""
Evidence artifact model
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class EvidenceType(str, Enum):
    """Content types accepted in a portfolio"""
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    CODE = "code"
    REFLECTION = "reflection"
    VIDEO = "video"
    IMAGE = "image"
    LINK = "link"

    @classmethod
    def values(cls) -> List[str]:
        return [t.value for t in cls]


class EvidenceArtifact(BaseModel):
    """A file or link submitted as proof of progress toward one objective"""
    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: Optional[str] = None
    learning_objective_id: Optional[str] = None
    student_id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    file_path: Optional[str] = None
    external_url: Optional[str] = None
    upload_date: Optional[datetime] = None
