"""
Pydantic models for citizen reports and their discussion threads.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ReportStatus(str, Enum):
    """Report lifecycle states."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class ReportUpdate(BaseModel):
    """
    Partial report update by municipal staff or external maintainers.
    Only fields that are present are applied.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ReportStatus] = None
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    address: Optional[str] = None
    images: Optional[List[str]] = None
    category_id: Optional[str] = None
    explanation: Optional[str] = None
    assigned_officer_id: Optional[str] = None
    assigned_external_maintainer_id: Optional[str] = None

    class Config:
        extra = "ignore"


class ReportFilter(BaseModel):
    """
    Listing filters. The bounding box applies only when all four edges are
    given; the radius search only when centre and radius are given.
    """
    status: Optional[ReportStatus] = None
    category_id: Optional[str] = None
    user_id: Optional[str] = None
    min_longitude: Optional[float] = None
    max_longitude: Optional[float] = None
    min_latitude: Optional[float] = None
    max_latitude: Optional[float] = None
    search_longitude: Optional[float] = None
    search_latitude: Optional[float] = None
    radius_meters: Optional[float] = Field(None, ge=0)

    @property
    def has_bounding_box(self) -> bool:
        return None not in (self.min_longitude, self.max_longitude, self.min_latitude, self.max_latitude)

    @property
    def has_radius(self) -> bool:
        return None not in (self.search_longitude, self.search_latitude, self.radius_meters)


class DashboardStats(BaseModel):
    """Report counters shown on the staff dashboard."""
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    assigned: int = 0
    rejected: int = 0
    resolved: int = 0
    user_assigned: int = 0
    user_rejected: int = 0
    user_in_progress: int = 0
    user_resolved: int = 0


class DiscussionEntryCreate(BaseModel):
    """New comment or message on a report."""
    content: str = Field(..., min_length=1, max_length=2000)
