"""
Report endpoints - submission, listing, processing and discussion of reports.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from participium.core.exceptions import ParticipiumError
from participium.core.guards import optional_session, require_roles, require_session
from participium.models.base import ok
from participium.models.report import DiscussionEntryCreate, ReportFilter, ReportStatus, ReportUpdate
from participium.services.discussion_service import get_discussion_service
from participium.services.report_service import get_report_service
from participium.services.taxonomy_service import (
    ADMIN_ROLE,
    EXTERNAL_MAINTAINER_ROLE,
    PR_OFFICER_ROLE,
    TECH_OFFICER_ROLE,
)
from participium.utils.uploads import validate_image, validate_report_image_count
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

STAFF_ROLES = (ADMIN_ROLE, PR_OFFICER_ROLE, TECH_OFFICER_ROLE, EXTERNAL_MAINTAINER_ROLE)


def report_filters(
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    category_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    min_longitude: Optional[float] = Query(None, ge=-180, le=180),
    max_longitude: Optional[float] = Query(None, ge=-180, le=180),
    min_latitude: Optional[float] = Query(None, ge=-90, le=90),
    max_latitude: Optional[float] = Query(None, ge=-90, le=90),
    search_longitude: Optional[float] = Query(None, ge=-180, le=180),
    search_latitude: Optional[float] = Query(None, ge=-90, le=90),
    radius_meters: Optional[float] = Query(None, ge=0),
) -> ReportFilter:
    return ReportFilter(
        status=status_filter,
        category_id=category_id,
        user_id=user_id,
        min_longitude=min_longitude,
        max_longitude=max_longitude,
        min_latitude=min_latitude,
        max_latitude=max_latitude,
        search_longitude=search_longitude,
        search_latitude=search_latitude,
        radius_meters=radius_meters,
    )


async def _read_images(images: List[UploadFile]):
    validate_report_image_count(len(images))
    uploads = []
    for image in images:
        data = await image.read()
        validate_image(image.filename, image.content_type, len(data))
        uploads.append((image.filename, image.content_type, data))
    return uploads


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    longitude: float = Form(..., ge=-180, le=180),
    latitude: float = Form(..., ge=-90, le=90),
    category_id: str = Form(..., min_length=1),
    address: Optional[str] = Form(None),
    is_anonymous: bool = Form(False),
    images: List[UploadFile] = File(default=[]),
    user: Dict = Depends(require_session),
):
    """
    Submit a new report (multipart form).

    Requires 1-3 JPEG/PNG/WebP images of at most 5MB each. The location
    must lie inside the municipal boundary.
    """
    try:
        uploads = await _read_images(images)
        report = get_report_service().create_report(
            user=user,
            title=title,
            description=description,
            longitude=longitude,
            latitude=latitude,
            category_id=category_id,
            images=uploads,
            address=address,
            is_anonymous=is_anonymous,
        )
        return ok(report)

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"POST /reports - Report creation failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Report creation failed"
        )


@router.get("")
async def list_reports(
    filters: ReportFilter = Depends(report_filters),
    user: Dict = Depends(require_session),
):
    """Reports visible to the caller, newest first."""
    return ok(get_report_service().find_all(user, filters))


@router.get("/public")
async def list_public_reports(
    filters: ReportFilter = Depends(report_filters),
    viewer: Optional[Dict] = Depends(optional_session),
):
    """
    Public map listing. Works without a session; a valid session only
    changes whether reporters of anonymous reports are shown.
    """
    try:
        return ok(get_report_service().find_all_public(filters, viewer))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"GET /reports/public failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve reports"
        )


@router.get("/stats")
async def get_stats(user: Dict = Depends(require_session)):
    """Dashboard counters."""
    return ok(get_report_service().get_dashboard_stats(user).model_dump())


@router.get("/nearby")
async def find_nearby(
    longitude: float = Query(..., ge=-180, le=180),
    latitude: float = Query(..., ge=-90, le=90),
    radius: Optional[float] = Query(None, gt=0),
    user: Dict = Depends(require_session),
):
    """Non-rejected reports around a point, nearest first."""
    return ok(get_report_service().find_nearby(longitude, latitude, user, radius))


@router.get("/user/{user_id}")
async def list_reports_by_officer(
    user_id: str,
    user: Dict = Depends(require_roles(PR_OFFICER_ROLE, TECH_OFFICER_ROLE)),
):
    """Reports assigned to an officer."""
    return ok(get_report_service().find_by_assigned_officer(user_id, user))


@router.get("/{report_id}")
async def get_report(report_id: str, user: Dict = Depends(require_session)):
    return ok(get_report_service().find_one(report_id, user))


@router.patch("/{report_id}")
async def update_report(
    report_id: str,
    payload: ReportUpdate,
    user: Dict = Depends(require_roles(PR_OFFICER_ROLE, TECH_OFFICER_ROLE, EXTERNAL_MAINTAINER_ROLE)),
):
    """
    Update a report. Status changes follow the caller's role workflow.
    """
    try:
        return ok(get_report_service().update_report(report_id, payload, user))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"PATCH /reports/{report_id} failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Report update failed"
        )


# Discussion

@router.get("/{report_id}/comments")
async def list_comments(report_id: str, user: Dict = Depends(require_roles(*STAFF_ROLES))):
    """Internal staff comments, oldest first."""
    return ok(get_discussion_service().get_comments(report_id, user))


@router.post("/{report_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    report_id: str,
    payload: DiscussionEntryCreate,
    user: Dict = Depends(require_roles(*STAFF_ROLES)),
):
    return ok(get_discussion_service().add_comment(report_id, user, payload.content))


@router.get("/{report_id}/messages")
async def list_messages(report_id: str, user: Dict = Depends(require_session)):
    """Messages between the reporter and staff, oldest first."""
    return ok(get_discussion_service().get_messages(report_id, user))


@router.post("/{report_id}/messages", status_code=status.HTTP_201_CREATED)
async def add_message(
    report_id: str,
    payload: DiscussionEntryCreate,
    user: Dict = Depends(require_session),
):
    return ok(get_discussion_service().add_message(report_id, user, payload.content))
