"""
Municipality user management endpoints (admin side).
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from participium.core.exceptions import ParticipiumError
from participium.core.guards import require_roles
from participium.models.base import ok
from participium.models.user import MunicipalityUserCreate, MunicipalityUserUpdate, OfficeRoleAssignment
from participium.services.taxonomy_service import ADMIN_ROLE, PR_OFFICER_ROLE, TECH_OFFICER_ROLE
from participium.services.user_service import get_user_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/municipality")
async def list_municipality_users(
    category_id: Optional[str] = Query(None),
    user: Dict = Depends(require_roles(ADMIN_ROLE, PR_OFFICER_ROLE)),
):
    """
    Municipal staff, sorted by name. With category_id, only the staff of
    the office responsible for that category.
    """
    return ok(get_user_service().find_municipality_users(category_id))


@router.get("/municipality/user/{user_id}")
async def get_municipality_user(user_id: str, user: Dict = Depends(require_roles(ADMIN_ROLE))):
    return ok(get_user_service().find_municipality_user_by_id(user_id))


@router.post("/municipality", status_code=status.HTTP_201_CREATED)
async def create_municipality_user(
    payload: MunicipalityUserCreate,
    user: Dict = Depends(require_roles(ADMIN_ROLE)),
):
    """Create a staff account. External maintainers need an external office."""
    try:
        created = get_user_service().create_municipality_user(payload)
        logger.info(f"Admin {user['id']} created municipality user {created['id']}")
        return ok(created)

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Failed to create municipality user: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create municipality user"
        )


@router.post("/municipality/user/{user_id}")
async def update_municipality_user(
    user_id: str,
    payload: MunicipalityUserUpdate,
    user: Dict = Depends(require_roles(ADMIN_ROLE)),
):
    try:
        return ok(get_user_service().update_municipality_user(user_id, payload))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Failed to update municipality user {user_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update municipality user"
        )


@router.delete("/municipality/user/{user_id}")
async def delete_municipality_user(user_id: str, user: Dict = Depends(require_roles(ADMIN_ROLE))):
    """Delete a staff account together with its sessions and office roles."""
    get_user_service().delete_municipality_user(user_id)
    return {"success": True}


@router.get("/municipality/user/{user_id}/office-roles")
async def list_office_roles(user_id: str, user: Dict = Depends(require_roles(ADMIN_ROLE))):
    return ok(get_user_service().get_user_office_roles(user_id))


@router.post("/municipality/user/{user_id}/office-roles")
async def assign_office_role(
    user_id: str,
    payload: OfficeRoleAssignment,
    user: Dict = Depends(require_roles(ADMIN_ROLE)),
):
    """Assign a staff member to one more office; returns all their assignments."""
    try:
        return ok(get_user_service().assign_user_to_office(user_id, payload))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Failed to assign user {user_id} to office {payload.office_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign office role"
        )


@router.delete("/municipality/user/{user_id}/office-roles/{office_id}")
async def remove_office_role(
    user_id: str,
    office_id: str,
    user: Dict = Depends(require_roles(ADMIN_ROLE)),
):
    get_user_service().remove_user_from_office(user_id, office_id)
    return ok({"id": user_id})


@router.get("/external-maintainers")
async def list_external_maintainers(
    category_id: Optional[str] = Query(None),
    user: Dict = Depends(require_roles(ADMIN_ROLE, TECH_OFFICER_ROLE)),
):
    """External maintainers, optionally those of a category's external office."""
    return ok(get_user_service().find_external_maintainers(category_id))
