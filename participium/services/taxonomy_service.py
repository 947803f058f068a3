"""
Taxonomy Service - roles, offices and report categories.

These collections are seeded by scripts/seed_db.py and are read-only for the API.
"""

from participium.config.firebase import get_db
from participium.utils.firestore_helpers import doc_to_dict, get_document, where_filter
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

CITIZEN_ROLE = "user"
ADMIN_ROLE = "admin"
PR_OFFICER_ROLE = "pr_officer"
TECH_OFFICER_ROLE = "tech_officer"
EXTERNAL_MAINTAINER_ROLE = "external_maintainer"


class TaxonomyService:
    """Read access to roles, offices and categories."""

    def __init__(self):
        self.db = get_db()

    # Roles

    def list_roles(self, include_citizen: bool = False) -> List[Dict]:
        roles = [doc_to_dict(doc) for doc in self.db.collection("roles").stream()]
        if not include_citizen:
            roles = [role for role in roles if role.get("name") != CITIZEN_ROLE]
        roles.sort(key=lambda r: r.get("name", ""))
        return roles

    def get_role(self, role_id: Optional[str]) -> Optional[Dict]:
        return get_document(self.db, "roles", role_id)

    def get_role_by_name(self, name: str) -> Optional[Dict]:
        query = where_filter(self.db.collection("roles"), "name", "==", name).limit(1)
        docs = list(query.stream())
        return doc_to_dict(docs[0]) if docs else None

    def municipal_role_ids(self) -> List[str]:
        return [role["id"] for role in self.list_roles() if role.get("is_municipal")]

    # Offices

    def list_offices(self) -> List[Dict]:
        offices = [doc_to_dict(doc) for doc in self.db.collection("offices").stream()]
        offices.sort(key=lambda o: o.get("name", ""))
        return offices

    def get_office(self, office_id: Optional[str]) -> Optional[Dict]:
        return get_document(self.db, "offices", office_id)

    # Categories

    def list_categories(self) -> List[Dict]:
        """All categories with their responsible office embedded."""
        offices = {office["id"]: office for office in self.list_offices()}
        categories = []
        for doc in self.db.collection("categories").stream():
            category = doc_to_dict(doc)
            category["office"] = offices.get(category.get("office_id"))
            categories.append(category)
        categories.sort(key=lambda c: c.get("name", ""))
        return categories

    def get_category(self, category_id: Optional[str]) -> Optional[Dict]:
        """Category with office and external office embedded, or None."""
        category = get_document(self.db, "categories", category_id)
        if category is None:
            return None
        category["office"] = self.get_office(category.get("office_id"))
        category["external_office"] = self.get_office(category.get("external_office_id"))
        return category


# Global service instance (singleton pattern)
_taxonomy_service = None


def get_taxonomy_service() -> TaxonomyService:
    """Get or create TaxonomyService singleton."""
    global _taxonomy_service
    if _taxonomy_service is None:
        _taxonomy_service = TaxonomyService()
    return _taxonomy_service
