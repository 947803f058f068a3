"""
Read-only endpoints for categories, offices and roles.
"""

from typing import Dict

from fastapi import APIRouter, Depends

from participium.core.guards import require_roles
from participium.models.base import ok
from participium.services.taxonomy_service import (
    ADMIN_ROLE,
    CITIZEN_ROLE,
    PR_OFFICER_ROLE,
    TECH_OFFICER_ROLE,
    get_taxonomy_service,
)

router = APIRouter(tags=["Taxonomy"])


@router.get("/categories")
async def list_categories(
    user: Dict = Depends(require_roles(CITIZEN_ROLE, PR_OFFICER_ROLE, TECH_OFFICER_ROLE, ADMIN_ROLE)),
):
    """Report categories with their responsible office."""
    return ok(get_taxonomy_service().list_categories())


@router.get("/offices")
async def list_offices(user: Dict = Depends(require_roles(ADMIN_ROLE, PR_OFFICER_ROLE, TECH_OFFICER_ROLE))):
    return ok(get_taxonomy_service().list_offices())


@router.get("/roles")
async def list_roles(user: Dict = Depends(require_roles(ADMIN_ROLE))):
    """Roles an admin can assign (every role except "user")."""
    return ok(get_taxonomy_service().list_roles(include_citizen=False))
