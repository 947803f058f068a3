"""
User Service - Manage users in Firestore.

Covers identity lookups used by the session guard, citizen account creation
and the admin-side management of municipality staff.
"""

from participium.config.firebase import get_db
from participium.core.exceptions import BadRequestError, ConflictError, NotFoundError
from participium.models.user import MunicipalityUserCreate, MunicipalityUserUpdate, OfficeRoleAssignment
from participium.services.taxonomy_service import (
    CITIZEN_ROLE,
    EXTERNAL_MAINTAINER_ROLE,
    get_taxonomy_service,
)
from participium.utils.firestore_helpers import doc_to_dict, get_document, utcnow, where_filter
from participium.utils.security import hash_password
from typing import Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)

# Never leave the service layer
SENSITIVE_USER_FIELDS = (
    "password_hash",
    "email_verification_code",
    "email_verification_code_expiry",
)


def public_user(user: Optional[Dict]) -> Optional[Dict]:
    """Copy of a user dict without password or verification secrets."""
    if user is None:
        return None
    return {key: value for key, value in user.items() if key not in SENSITIVE_USER_FIELDS}


def _sort_by_name(users: Iterable[Dict]) -> List[Dict]:
    return sorted(users, key=lambda u: (u.get("first_name", ""), u.get("last_name", "")))


def _office_role_id(user_id: str, office_id: str) -> str:
    # One assignment per (user, office)
    return f"{user_id}_{office_id}"


class UserService:
    """
    Service for user management in Firestore.
    """

    def __init__(self):
        self.db = get_db()
        self.taxonomy = get_taxonomy_service()

    # Lookups

    def get_user(self, user_id: Optional[str]) -> Optional[Dict]:
        return get_document(self.db, "users", user_id)

    def get_user_with_relations(self, user_id: Optional[str]) -> Optional[Dict]:
        """User with its role and office embedded (raw, including secrets)."""
        user = self.get_user(user_id)
        if user is None:
            return None
        return self._attach_relations(user)

    def get_user_by_field(self, field: str, value: str) -> Optional[Dict]:
        query = where_filter(self.db.collection("users"), field, "==", value).limit(1)
        docs = list(query.stream())
        return doc_to_dict(docs[0]) if docs else None

    def get_user_by_username(self, username: str) -> Optional[Dict]:
        return self.get_user_by_field("username", username)

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        return self.get_user_by_field("email", email)

    def get_public_users(self, user_ids: Iterable[Optional[str]]) -> Dict[str, Dict]:
        """Resolve several user ids at once (used to embed reporters/assignees)."""
        result = {}
        for user_id in set(filter(None, user_ids)):
            user = self.get_user_with_relations(user_id)
            if user is not None:
                result[user_id] = public_user(user)
        return result

    def _attach_relations(self, user: Dict) -> Dict:
        user["role"] = self.taxonomy.get_role(user.get("role_id"))
        user["office"] = self.taxonomy.get_office(user.get("office_id"))
        return user

    def _ensure_unique(self, username: Optional[str] = None, email: Optional[str] = None,
                       exclude_id: Optional[str] = None) -> None:
        if username:
            existing = self.get_user_by_username(username)
            if existing and existing["id"] != exclude_id:
                raise ConflictError("User with this username already exists")
        if email:
            existing = self.get_user_by_email(email)
            if existing and existing["id"] != exclude_id:
                raise ConflictError("User with this email already exists")

    # Citizens

    def create_citizen(self, email: str, username: str, first_name: str, last_name: str,
                       password: str, verification_code: str, code_expiry) -> Dict:
        """
        Create a citizen account (role "user") together with its empty profile.
        The account stays unverified until the e-mail code is confirmed.
        """
        existing = self.get_user_by_username(username) or self.get_user_by_email(email)
        if existing:
            raise ConflictError("Username or Email already in use")

        citizen_role = self.taxonomy.get_role_by_name(CITIZEN_ROLE)
        if citizen_role is None:
            raise ConflictError('Default role "user" not found. Contact support.')

        now = utcnow()
        user_ref = self.db.collection("users").document()
        user_data = {
            "email": email,
            "username": username,
            "first_name": first_name,
            "last_name": last_name,
            "role_id": citizen_role["id"],
            "office_id": None,
            "password_hash": hash_password(password),
            "is_email_verified": False,
            "email_verification_code": verification_code,
            "email_verification_code_expiry": code_expiry,
            "created_at": now,
            "updated_at": now,
        }
        user_ref.set(user_data)

        self.db.collection("profiles").document(user_ref.id).set({
            "user_id": user_ref.id,
            "telegram_username": None,
            "telegram_id": None,
            "telegram_linked_at": None,
            "email_notifications_enabled": True,
            "profile_picture_url": None,
            "created_at": now,
            "updated_at": now,
        })

        logger.info(f"Citizen created: {user_ref.id}")
        user_data["id"] = user_ref.id
        return user_data

    def update_user(self, user_id: str, update_data: Dict) -> Dict:
        """Apply raw field updates and return the refreshed user with relations."""
        update_data = dict(update_data, updated_at=utcnow())
        user_ref = self.db.collection("users").document(user_id)
        user_ref.update(update_data)
        return self.get_user_with_relations(user_id)

    # Municipality staff

    def find_municipality_users(self, category_id: Optional[str] = None) -> List[Dict]:
        municipal_role_ids = self.taxonomy.municipal_role_ids()
        if not municipal_role_ids:
            return []

        if category_id:
            category = self.taxonomy.get_category(category_id)
            if category is None:
                raise NotFoundError(f"Category with ID {category_id} not found")
            if not category.get("office"):
                raise BadRequestError(f"Category {category_id} has no office assigned")

            users = [
                user for user in self._users_with_roles(municipal_role_ids)
                if user.get("office_id") == category["office"]["id"]
            ]
            if not users:
                raise NotFoundError(f"No officers found for category {category_id}")
            return _sort_by_name(users)

        return _sort_by_name(self._users_with_roles(municipal_role_ids))

    def find_municipality_user_by_id(self, user_id: str) -> Dict:
        user = self.get_user_with_relations(user_id)
        if user is None or not (user.get("role") or {}).get("is_municipal"):
            raise NotFoundError("Municipality user not found")
        return public_user(user)

    def create_municipality_user(self, request: MunicipalityUserCreate) -> Dict:
        role = self.taxonomy.get_role(request.role_id)
        if role is None:
            raise NotFoundError("Role not found")

        office = None
        if request.office_id:
            office = self.taxonomy.get_office(request.office_id)
            if office is None:
                raise NotFoundError("Office not found")

        self.validate_office_role_match(role, office)
        self._ensure_unique(username=request.username, email=request.email)

        now = utcnow()
        user_ref = self.db.collection("users").document()
        user_ref.set({
            "email": request.email,
            "username": request.username,
            "first_name": request.first_name,
            "last_name": request.last_name,
            "role_id": role["id"],
            "office_id": office["id"] if office else None,
            "password_hash": hash_password(request.password),
            "is_email_verified": True,
            "created_at": now,
            "updated_at": now,
        })

        if office:
            self._write_office_role(user_ref.id, office["id"], role["id"], now)

        logger.info(f"Municipality user created: {user_ref.id} ({role.get('name')})")
        return public_user(self.get_user_with_relations(user_ref.id))

    def update_municipality_user(self, user_id: str, request: MunicipalityUserUpdate) -> Dict:
        user = self.get_user_with_relations(user_id)
        if user is None:
            raise NotFoundError("Municipality user not found")

        self._ensure_unique(
            username=request.username if request.username != user.get("username") else None,
            email=request.email if request.email != user.get("email") else None,
            exclude_id=user_id,
        )

        update_data = {}
        for field in ("email", "username", "first_name", "last_name"):
            value = getattr(request, field)
            if value:
                update_data[field] = value

        role = user.get("role")
        office = user.get("office")

        if request.role_id:
            role = self.taxonomy.get_role(request.role_id)
            if role is None:
                raise NotFoundError("Role not found")
            update_data["role_id"] = role["id"]

        if request.office_id:
            office = self.taxonomy.get_office(request.office_id)
            if office is None:
                raise NotFoundError("Office not found")
            update_data["office_id"] = office["id"]

        self.validate_office_role_match(role or {}, office)

        return public_user(self.update_user(user_id, update_data))

    def delete_municipality_user(self, user_id: str) -> None:
        user = self.get_user_with_relations(user_id)
        if user is None or not (user.get("role") or {}).get("is_municipal"):
            raise NotFoundError("Municipality user not found")

        sessions = where_filter(self.db.collection("sessions"), "user_id", "==", user_id).stream()
        for session in sessions:
            session.reference.delete()
        assignments = where_filter(self.db.collection("office_roles"), "user_id", "==", user_id).stream()
        for assignment in assignments:
            assignment.reference.delete()
        self.db.collection("users").document(user_id).delete()
        logger.info(f"Municipality user deleted: {user_id}")

    # Office roles

    def get_user_office_roles(self, user_id: str) -> List[Dict]:
        """All office/role assignments of a staff member, oldest first."""
        self.find_municipality_user_by_id(user_id)
        return self._office_roles_of(user_id)

    def assign_user_to_office(self, user_id: str, request: OfficeRoleAssignment) -> List[Dict]:
        """
        Give a staff member a role in one more office.

        Raises:
            NotFoundError: unknown user, role or office
            BadRequestError: role and office type do not match
            ConflictError: the user already has a role in that office
        """
        self.find_municipality_user_by_id(user_id)

        role = self.taxonomy.get_role(request.role_id)
        if role is None:
            raise NotFoundError("Role not found")
        office = self.taxonomy.get_office(request.office_id)
        if office is None:
            raise NotFoundError("Office not found")

        self.validate_office_role_match(role, office)

        if get_document(self.db, "office_roles", _office_role_id(user_id, office["id"])):
            raise ConflictError("User is already assigned to this office")

        self._write_office_role(user_id, office["id"], role["id"], utcnow())
        logger.info(f"User {user_id} assigned to office {office['id']} as {role.get('name')}")
        return self._office_roles_of(user_id)

    def remove_user_from_office(self, user_id: str, office_id: str) -> None:
        """
        Drop a staff member's role in an office. A user keeps at least one.
        """
        self.find_municipality_user_by_id(user_id)

        assignment_id = _office_role_id(user_id, office_id)
        if get_document(self.db, "office_roles", assignment_id) is None:
            raise NotFoundError("Office role assignment not found")

        remaining = where_filter(self.db.collection("office_roles"), "user_id", "==", user_id).stream()
        if len(list(remaining)) <= 1:
            raise BadRequestError("Cannot remove the last office role of a user")

        self.db.collection("office_roles").document(assignment_id).delete()
        logger.info(f"User {user_id} removed from office {office_id}")

    def _write_office_role(self, user_id: str, office_id: str, role_id: str, now) -> None:
        self.db.collection("office_roles").document(_office_role_id(user_id, office_id)).set({
            "user_id": user_id,
            "office_id": office_id,
            "role_id": role_id,
            "created_at": now,
            "updated_at": now,
        })

    def _office_roles_of(self, user_id: str) -> List[Dict]:
        query = where_filter(self.db.collection("office_roles"), "user_id", "==", user_id)
        assignments = [doc_to_dict(doc) for doc in query.stream()]
        for assignment in assignments:
            assignment["role"] = self.taxonomy.get_role(assignment.get("role_id"))
            assignment["office"] = self.taxonomy.get_office(assignment.get("office_id"))
        return sorted(assignments, key=lambda a: a.get("created_at"))

    def find_external_maintainers(self, category_id: Optional[str] = None) -> List[Dict]:
        role = self.taxonomy.get_role_by_name(EXTERNAL_MAINTAINER_ROLE)
        if role is None:
            return []

        if category_id:
            category = self.taxonomy.get_category(category_id)
            if category is None:
                raise NotFoundError(f"Category with ID {category_id} not found")
            if not category.get("external_office"):
                raise BadRequestError(f"Category {category_id} has no external office assigned")

            maintainers = [
                user for user in self._users_with_roles([role["id"]])
                if user.get("office_id") == category["external_office"]["id"]
            ]
            if not maintainers:
                raise NotFoundError(f"No external maintainers found for category {category_id}")
            return _sort_by_name(maintainers)

        return _sort_by_name(self._users_with_roles([role["id"]]))

    def find_officers_in_office(self, office_id: str, role_name: str) -> List[Dict]:
        role = self.taxonomy.get_role_by_name(role_name)
        if role is None:
            return []
        return [
            user for user in self._users_with_roles([role["id"]])
            if user.get("office_id") == office_id
        ]

    @staticmethod
    def validate_office_role_match(role: Dict, office: Optional[Dict]) -> None:
        """
        External maintainers must belong to an external office; every other
        role must not.
        """
        is_external_maintainer = role.get("name") == EXTERNAL_MAINTAINER_ROLE
        has_external_office = bool(office and office.get("is_external"))

        if is_external_maintainer and not office:
            raise BadRequestError("External maintainers must be assigned to an office")
        if is_external_maintainer and not has_external_office:
            raise BadRequestError("External maintainers must be assigned to an external office")
        if not is_external_maintainer and has_external_office:
            raise BadRequestError("Only external maintainers can be assigned to an external office")

    def _users_with_roles(self, role_ids: List[str]) -> List[Dict]:
        query = where_filter(self.db.collection("users"), "role_id", "in", role_ids)
        return [public_user(self._attach_relations(doc_to_dict(doc))) for doc in query.stream()]


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
