"""
Status Workflow Engine - role-dependent report status transitions.

Each staff role may move a report only along its own edges:

    pr_officer:          pending -> in_progress | assigned | rejected
                         assigned -> in_progress | rejected
                         in_progress -> resolved | rejected
    tech_officer:        pending -> assigned
                         assigned -> in_progress | rejected
                         in_progress -> resolved
    external_maintainer: assigned -> in_progress
                         in_progress -> resolved

resolved and rejected are terminal.
"""

from typing import Dict, List, Optional
import logging

from participium.core.exceptions import BadRequestError
from participium.models.report import ReportStatus
from participium.services.taxonomy_service import (
    EXTERNAL_MAINTAINER_ROLE,
    PR_OFFICER_ROLE,
    TECH_OFFICER_ROLE,
)

logger = logging.getLogger(__name__)

Transitions = Dict[ReportStatus, List[ReportStatus]]


class StatusWorkflowEngine:
    """
    Per-role state machine for report status transitions.

    Rules:
    - Only listed edges are allowed (re-setting the current status is not)
    - Terminal states have no outgoing edges
    - Roles without a table cannot change status
    """

    ALLOWED_TRANSITIONS: Dict[str, Transitions] = {
        PR_OFFICER_ROLE: {
            ReportStatus.PENDING: [ReportStatus.IN_PROGRESS, ReportStatus.ASSIGNED, ReportStatus.REJECTED],
            ReportStatus.ASSIGNED: [ReportStatus.IN_PROGRESS, ReportStatus.REJECTED],
            ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED, ReportStatus.REJECTED],
        },
        TECH_OFFICER_ROLE: {
            ReportStatus.PENDING: [ReportStatus.ASSIGNED],
            ReportStatus.ASSIGNED: [ReportStatus.IN_PROGRESS, ReportStatus.REJECTED],
            ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED],
        },
        EXTERNAL_MAINTAINER_ROLE: {
            ReportStatus.ASSIGNED: [ReportStatus.IN_PROGRESS],
            ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED],
        },
    }

    # Transitions into these states record who processed the report
    PROCESSING_STATUSES = (ReportStatus.ASSIGNED, ReportStatus.REJECTED)

    @classmethod
    def is_valid_transition(cls, role_name: Optional[str], from_status: str, to_status: str) -> bool:
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        table = cls.ALLOWED_TRANSITIONS.get(role_name or "", {})
        return to_enum in table.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, role_name: Optional[str], current_status: str) -> List[str]:
        try:
            current_enum = ReportStatus(current_status)
        except ValueError:
            return []
        table = cls.ALLOWED_TRANSITIONS.get(role_name or "", {})
        return [status.value for status in table.get(current_enum, [])]

    @classmethod
    def validate_transition(cls, role_name: Optional[str], current_status: str, new_status: str) -> None:
        """
        Raises:
            BadRequestError: if the role may not perform the transition
        """
        if not cls.is_valid_transition(role_name, current_status, new_status):
            allowed = cls.get_allowed_transitions(role_name, current_status)
            logger.info(f"Rejected transition {current_status} -> {new_status} for role {role_name}")
            raise BadRequestError(
                f"{role_name or 'User'} cannot change status from {current_status} to {new_status}. "
                f"Allowed: {', '.join(allowed) if allowed else 'none'}"
            )

    @classmethod
    def records_processing(cls, new_status: str) -> bool:
        return new_status in {status.value for status in cls.PROCESSING_STATUSES}
