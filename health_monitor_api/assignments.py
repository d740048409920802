# assignments.py
"""Who gets told about a subject: assigned caretakers and emergency contacts."""

import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConflictError, NotAssigned, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result of a user-facing write that may be a non-fatal no-op."""

    ok: bool
    message: str
    record: Optional[object] = None


class AssignmentRouter:
    def __init__(self, repository):
        self.repository = repository

    def recipients_for(self, subject_id):
        """Ids of caretakers with an active assignment to ``subject_id``."""
        return {str(caretaker.id) for caretaker in self.repository.query_caretakers(subject_id)}

    def caretaker_emails_for(self, subject_id):
        return [c.email for c in self.repository.query_caretakers(subject_id) if c.email]

    def guardians_for(self, subject_id):
        return self.repository.query_guardians(subject_id)

    def require_assignment(self, caretaker_id, subject_id):
        if not self.repository.assignment_exists(caretaker_id, subject_id):
            raise NotAssigned(f"Caretaker {caretaker_id} is not assigned to {subject_id}")

    def assign(self, caretaker_id, subject_id) -> Outcome:
        if self.repository.get_profile(caretaker_id, role="Caretaker") is None:
            raise ValidationError("caretaker_id", "no caretaker with this id")
        if self.repository.get_profile(subject_id, role="Patient") is None:
            raise ValidationError("patient_id", "no patient with this id")
        try:
            assignment = self.repository.insert_assignment(caretaker_id, subject_id)
        except ConflictError:
            logger.info("Caretaker %s already assigned to %s", caretaker_id, subject_id)
            return Outcome(ok=False, message="Patient already assigned")
        return Outcome(ok=True, message="Patient assigned successfully", record=assignment)

    def unassign(self, caretaker_id, subject_id) -> Outcome:
        if self.repository.delete_assignment(caretaker_id, subject_id):
            return Outcome(ok=True, message="Patient removed successfully")
        return Outcome(ok=False, message="Patient was not assigned")

    def add_guardian(self, subject_id, name, email) -> Outcome:
        try:
            guardian = self.repository.insert_guardian(subject_id, name.strip(), email.strip())
        except ConflictError:
            return Outcome(ok=False, message="Contact already added")
        return Outcome(ok=True, message="Emergency contact added successfully", record=guardian)

    def unread_count(self, caretaker_id) -> int:
        subject_ids = [a.subject_id for a in self.repository.query_assignments(caretaker_id)]
        if not subject_ids:
            return 0
        return self.repository.count_unread_alerts(subject_ids)
