"""
Report Service - citizen reports in Firestore.

Spatial filters (bounding box, radius, municipal boundary) are evaluated in
Python over the fetched documents; Firestore only narrows by equality.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from participium.config.firebase import get_db
from participium.core.exceptions import BadRequestError, NotFoundError
from participium.core.settings import settings
from participium.models.report import DashboardStats, ReportFilter, ReportStatus, ReportUpdate
from participium.services.boundary_service import get_boundary_service
from participium.services.geocoding import reverse_geocode_address
from participium.services.notification_service import get_notification_service
from participium.services.status_workflow import StatusWorkflowEngine
from participium.services.storage_service import get_storage_service
from participium.services.taxonomy_service import (
    CITIZEN_ROLE,
    EXTERNAL_MAINTAINER_ROLE,
    PR_OFFICER_ROLE,
    TECH_OFFICER_ROLE,
    get_taxonomy_service,
)
from participium.services.user_service import get_user_service
from participium.utils.firestore_helpers import doc_to_dict, get_document, parse_timestamp, utcnow, where_filter
from participium.utils.geometry import haversine_meters, in_bounding_box, within_radius
from participium.utils.uploads import sanitize_filename

logger = logging.getLogger(__name__)

# Roles that always see who filed an anonymous report
PRIVILEGED_ROLES = (PR_OFFICER_ROLE, TECH_OFFICER_ROLE)

# (filename, content_type, data)
ImageUpload = Tuple[str, str, bytes]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def role_name(user: Optional[Dict]) -> Optional[str]:
    if not user:
        return None
    return (user.get("role") or {}).get("name")


def sanitize_report(report: Dict, viewer: Optional[Dict]) -> Dict:
    """
    Hide the reporter of an anonymous report unless the viewer filed it or
    holds a privileged role.
    """
    if not report.get("is_anonymous"):
        return report
    if viewer and viewer.get("id") == report.get("user_id"):
        return report
    if role_name(viewer) in PRIVILEGED_ROLES:
        return report

    sanitized = dict(report)
    sanitized["user"] = None
    sanitized["user_id"] = None
    return sanitized


def _newest_first(reports: Iterable[Dict]) -> List[Dict]:
    return sorted(reports, key=lambda r: parse_timestamp(r.get("created_at")) or _EPOCH, reverse=True)


def matches_spatial_filters(report: Dict, filters: ReportFilter) -> bool:
    longitude = report.get("longitude")
    latitude = report.get("latitude")
    if longitude is None or latitude is None:
        return not (filters.has_bounding_box or filters.has_radius)

    if filters.has_bounding_box and not in_bounding_box(
        longitude,
        latitude,
        filters.min_longitude,
        filters.min_latitude,
        filters.max_longitude,
        filters.max_latitude,
    ):
        return False

    if filters.has_radius and not within_radius(
        longitude,
        latitude,
        filters.search_longitude,
        filters.search_latitude,
        filters.radius_meters,
    ):
        return False

    return True


class ReportService:
    """
    Service for creating, listing and processing reports.
    """

    def __init__(self):
        self.db = get_db()
        self.users = get_user_service()
        self.taxonomy = get_taxonomy_service()
        self.boundaries = get_boundary_service()
        self.notifications = get_notification_service()

    # Loading

    def get_report(self, report_id: str) -> Dict:
        report = get_document(self.db, "reports", report_id)
        if report is None:
            raise NotFoundError(f"Report with ID {report_id} not found")
        return report

    def _stream(self, **equals) -> List[Dict]:
        query = self.db.collection("reports")
        for field, value in equals.items():
            if value is not None:
                query = where_filter(query, field, "==", value)
        return [doc_to_dict(doc) for doc in query.stream()]

    def _with_relations(self, reports: List[Dict]) -> List[Dict]:
        """Embed reporter, category and assignees into each report."""
        people = self.users.get_public_users(
            user_id
            for report in reports
            for user_id in (
                report.get("user_id"),
                report.get("assigned_officer_id"),
                report.get("assigned_external_maintainer_id"),
            )
        )
        categories = {}
        for report in reports:
            category_id = report.get("category_id")
            if category_id and category_id not in categories:
                categories[category_id] = self.taxonomy.get_category(category_id)

            report["user"] = people.get(report.get("user_id"))
            report["category"] = categories.get(category_id)
            report["assigned_officer"] = people.get(report.get("assigned_officer_id"))
            report["assigned_external_maintainer"] = people.get(report.get("assigned_external_maintainer_id"))
        return reports

    def _present(self, reports: List[Dict], viewer: Optional[Dict]) -> List[Dict]:
        return [sanitize_report(report, viewer) for report in self._with_relations(reports)]

    # Creation

    def create_report(
        self,
        user: Dict,
        title: str,
        description: str,
        longitude: float,
        latitude: float,
        category_id: str,
        images: List[ImageUpload],
        address: Optional[str] = None,
        is_anonymous: bool = False,
    ) -> Dict:
        """
        Create a pending report with its photos.

        Raises:
            BadRequestError: coordinates outside every municipal boundary
            NotFoundError: unknown category
            StorageError: photo upload failed
        """
        self.boundaries.validate_coordinates(longitude, latitude)

        if self.taxonomy.get_category(category_id) is None:
            raise NotFoundError(f"Category with ID {category_id} not found")

        report_ref = self.db.collection("reports").document()

        storage = get_storage_service()
        image_urls = []
        for filename, content_type, data in images:
            timestamp = int(utcnow().timestamp() * 1000)
            path = f"reports/{report_ref.id}/{timestamp}-{sanitize_filename(filename)}"
            image_urls.append(storage.upload_file(path, data, content_type))

        if not address:
            address = reverse_geocode_address(latitude, longitude)

        now = utcnow()
        report_data = {
            "title": title,
            "description": description,
            "status": ReportStatus.PENDING.value,
            "longitude": longitude,
            "latitude": latitude,
            "address": address,
            "images": image_urls,
            "user_id": user["id"],
            "is_anonymous": bool(is_anonymous),
            "category_id": category_id,
            "explanation": None,
            "assigned_officer_id": None,
            "assigned_external_maintainer_id": None,
            "processed_by_id": None,
            "created_at": now,
            "updated_at": now,
        }
        report_ref.set(report_data)
        logger.info(f"Report created: {report_ref.id} by user {user['id']}")

        report_data["id"] = report_ref.id
        return self._present([report_data], user)[0]

    # Listing

    def find_all(self, viewer: Dict, filters: Optional[ReportFilter] = None) -> List[Dict]:
        """
        Reports visible to an authenticated viewer.

        - user: every non-rejected report plus its own rejected ones
        - external_maintainer: only reports assigned to it
        - pr_officer: only pending reports (status filter ignored)
        """
        filters = filters or ReportFilter()
        viewer_role = role_name(viewer)

        status = filters.status.value if filters.status else None
        if viewer_role == PR_OFFICER_ROLE:
            status = ReportStatus.PENDING.value

        reports = self._stream(
            status=status,
            category_id=filters.category_id,
            user_id=filters.user_id,
            assigned_external_maintainer_id=viewer["id"] if viewer_role == EXTERNAL_MAINTAINER_ROLE else None,
        )

        if viewer_role == CITIZEN_ROLE:
            reports = [
                r for r in reports
                if r.get("status") != ReportStatus.REJECTED.value or r.get("user_id") == viewer["id"]
            ]

        reports = [r for r in reports if matches_spatial_filters(r, filters)]
        return self._present(_newest_first(reports), viewer)

    def find_all_public(self, filters: Optional[ReportFilter] = None,
                        viewer: Optional[Dict] = None) -> List[Dict]:
        """Non-rejected reports for the public map; viewer may be anonymous."""
        filters = filters or ReportFilter()
        reports = self._stream(
            status=filters.status.value if filters.status else None,
            category_id=filters.category_id,
        )
        reports = [
            r for r in reports
            if r.get("status") != ReportStatus.REJECTED.value and matches_spatial_filters(r, filters)
        ]
        return self._present(_newest_first(reports), viewer)

    def find_one(self, report_id: str, viewer: Dict) -> Dict:
        report = self.get_report(report_id)
        viewer_role = role_name(viewer)

        if (
            viewer_role == CITIZEN_ROLE
            and report.get("status") == ReportStatus.REJECTED.value
            and report.get("user_id") != viewer["id"]
        ):
            raise NotFoundError(f"Report with ID {report_id} not found")

        if (
            viewer_role == EXTERNAL_MAINTAINER_ROLE
            and report.get("assigned_external_maintainer_id") != viewer["id"]
        ):
            raise NotFoundError(f"Report with ID {report_id} not found")

        return self._present([report], viewer)[0]

    def find_nearby(self, longitude: float, latitude: float, viewer: Dict,
                    radius_meters: Optional[float] = None) -> List[Dict]:
        """Non-rejected reports within the radius, nearest first, each with "distance" in metres."""
        if radius_meters is None:
            radius_meters = settings.NEARBY_DEFAULT_RADIUS_METERS

        nearby = []
        for report in self._stream():
            if report.get("status") == ReportStatus.REJECTED.value:
                continue
            if report.get("longitude") is None or report.get("latitude") is None:
                continue
            distance = haversine_meters(latitude, longitude, report["latitude"], report["longitude"])
            if distance <= radius_meters:
                report["distance"] = distance
                nearby.append(report)

        nearby.sort(key=lambda r: r["distance"])
        return self._present(nearby, viewer)

    def find_by_assigned_officer(self, officer_id: str, viewer: Dict) -> List[Dict]:
        reports = self._stream(assigned_officer_id=officer_id)
        return self._present(_newest_first(reports), viewer)

    def get_dashboard_stats(self, user: Dict) -> DashboardStats:
        """Totals per status plus the reports linked to the caller."""
        stats = DashboardStats()
        user_id = user["id"]

        for report in self._stream():
            status = report.get("status")
            stats.total += 1
            if status in (
                ReportStatus.PENDING.value,
                ReportStatus.ASSIGNED.value,
                ReportStatus.IN_PROGRESS.value,
                ReportStatus.RESOLVED.value,
                ReportStatus.REJECTED.value,
            ):
                setattr(stats, status, getattr(stats, status) + 1)

            handles = user_id in (
                report.get("assigned_officer_id"),
                report.get("assigned_external_maintainer_id"),
            )
            processed = handles or report.get("processed_by_id") == user_id

            if status == ReportStatus.ASSIGNED.value and processed:
                stats.user_assigned += 1
            elif status == ReportStatus.REJECTED.value and processed:
                stats.user_rejected += 1
            elif status == ReportStatus.IN_PROGRESS.value and handles:
                stats.user_in_progress += 1
            elif status == ReportStatus.RESOLVED.value and handles:
                stats.user_resolved += 1

        return stats

    # Processing

    def update_report(self, report_id: str, request: ReportUpdate, actor: Dict) -> Dict:
        """
        Apply a partial update from staff or an external maintainer.

        Raises:
            NotFoundError: unknown report, category or officer
            BadRequestError: forbidden transition, foreign report for an
                external maintainer, or an assignee from the wrong office
        """
        report = self.get_report(report_id)
        actor_role = role_name(actor)
        fields_set = request.model_fields_set
        new_status = request.status.value if request.status else None

        if actor_role == EXTERNAL_MAINTAINER_ROLE and report.get("assigned_external_maintainer_id") != actor["id"]:
            raise BadRequestError("You can only modify reports assigned to you")

        if new_status and actor_role in StatusWorkflowEngine.ALLOWED_TRANSITIONS:
            StatusWorkflowEngine.validate_transition(actor_role, report.get("status"), new_status)

        update_data = {}

        if request.longitude is not None and request.latitude is not None:
            update_data["longitude"] = request.longitude
            update_data["latitude"] = request.latitude

        if request.category_id is not None:
            if self.taxonomy.get_category(request.category_id) is None:
                raise NotFoundError(f"Category with ID {request.category_id} not found")
            update_data["category_id"] = request.category_id

        category_id = update_data.get("category_id", report.get("category_id"))

        if new_status == ReportStatus.ASSIGNED.value:
            officer_id = self._pick_officer(category_id, request.assigned_officer_id)
            if officer_id:
                update_data["assigned_officer_id"] = officer_id

        if "assigned_external_maintainer_id" in fields_set:
            update_data["assigned_external_maintainer_id"] = self._check_external_maintainer(
                category_id, request.assigned_external_maintainer_id
            )

        if new_status and StatusWorkflowEngine.records_processing(new_status):
            update_data["processed_by_id"] = actor["id"]

        for field in ("title", "description", "address", "images", "explanation"):
            value = getattr(request, field)
            if value is not None:
                update_data[field] = value
        if new_status:
            update_data["status"] = new_status

        update_data["updated_at"] = utcnow()
        self.db.collection("reports").document(report_id).update(update_data)
        logger.info(f"Report {report_id} updated by {actor['id']}: {sorted(update_data)}")

        previous_status = report.get("status")
        report.update(update_data)

        if new_status and new_status != previous_status:
            self.notifications.notify_status_change(report, new_status)

        return self._present([report], actor)[0]

    def _pick_officer(self, category_id: Optional[str], officer_id: Optional[str]) -> Optional[str]:
        """Validate the requested officer, or pick the least busy technical officer."""
        category = self.taxonomy.get_category(category_id)
        office = (category or {}).get("office")

        if officer_id:
            officer = self.users.get_user(officer_id)
            if officer is None:
                raise NotFoundError(f"Officer with ID {officer_id} not found")
            if office and officer.get("office_id") != office["id"]:
                raise BadRequestError(
                    f"Officer {officer_id} does not belong to the office responsible for category {category_id}"
                )
            return officer["id"]

        if not office:
            return None
        return self.find_least_busy_officer(office["id"])

    def find_least_busy_officer(self, office_id: str) -> Optional[str]:
        """Technical officer of the office with the fewest reports currently assigned."""
        officers = self.users.find_officers_in_office(office_id, TECH_OFFICER_ROLE)
        if not officers:
            return None

        counts = {officer["id"]: 0 for officer in officers}
        for report in self._stream(status=ReportStatus.ASSIGNED.value):
            assignee = report.get("assigned_officer_id")
            if assignee in counts:
                counts[assignee] += 1

        officers.sort(key=lambda o: (counts[o["id"]], o.get("first_name", ""), o.get("last_name", "")))
        return officers[0]["id"]

    def _check_external_maintainer(self, category_id: Optional[str],
                                   maintainer_id: Optional[str]) -> Optional[str]:
        """Empty id unassigns; otherwise the user must be a maintainer of the category's external office."""
        if not maintainer_id:
            return None

        maintainer = self.users.get_user_with_relations(maintainer_id)
        if maintainer is None or role_name(maintainer) != EXTERNAL_MAINTAINER_ROLE:
            raise BadRequestError("The specified user is not an external maintainer")

        category = self.taxonomy.get_category(category_id)
        external_office = (category or {}).get("external_office")
        if external_office and maintainer.get("office_id") != external_office["id"]:
            raise BadRequestError(
                f"External maintainer {maintainer_id} does not belong to the external office "
                f"responsible for category {category_id}"
            )
        return maintainer["id"]


# Global service instance (singleton pattern)
_report_service = None


def get_report_service() -> ReportService:
    """
    Get or create ReportService singleton instance.

    Returns:
        ReportService: The global report service instance
    """
    global _report_service
    if _report_service is None:
        _report_service = ReportService()
    return _report_service
