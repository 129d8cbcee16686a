"""Access policy for student profiles.

Every route that creates, edits or deletes a profile asks this policy
instead of re-deriving ownership itself. Ownership is decided by the
``owner_email`` column. Legacy records imported before that column existed
have no owner email; for those only, a university address of the form
``s<digits>@...`` owns the records whose student number starts with those
digits.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from campusdir.shared.models import StudentRecord
from campusdir.shared.utils import hash_pii

logger = logging.getLogger(__name__)


class AccessDenied(Exception):
    """Principal may not perform the operation."""
    pass


class AuthenticationRequired(AccessDenied):
    """No authenticated principal on the request."""
    pass


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def legacy_student_prefix(email: Optional[str]) -> Optional[str]:
    """Derive the student-number prefix from a university email.

    ``s253149@example.ac.jp`` → ``"253149"``. Returns None for addresses
    that do not follow the ``s`` + six or more digits pattern.
    """
    username = _normalize_email(email).split("@")[0]
    digits = username[1:]
    if username.startswith("s") and len(digits) >= 6 and digits.isdigit():
        return digits
    return None


@dataclass(frozen=True)
class AccessPolicy:
    """Decides what a principal may do with student profiles."""

    admin_emails: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls) -> "AccessPolicy":
        """Create policy from ADMIN_EMAIL (comma separated)."""
        return cls.with_admins(os.getenv("ADMIN_EMAIL", "").split(","))

    @classmethod
    def with_admins(cls, emails: Iterable[str]) -> "AccessPolicy":
        return cls(admin_emails=frozenset(
            _normalize_email(e) for e in emails if _normalize_email(e)
        ))

    def is_admin(self, principal: Optional[str]) -> bool:
        return bool(principal) and _normalize_email(principal) in self.admin_emails

    def owns(self, principal: Optional[str], record: StudentRecord) -> bool:
        """Check whether ``principal`` owns ``record``."""
        email = _normalize_email(principal)
        if not email:
            return False

        if record.owner_email:
            return _normalize_email(record.owner_email) == email

        prefix = legacy_student_prefix(email)
        return prefix is not None and record.student_id.startswith(prefix)

    def can_mutate(self, principal: Optional[str], record: StudentRecord) -> bool:
        """Whether ``principal`` may edit or delete ``record``."""
        return self.is_admin(principal) or self.owns(principal, record)

    def can_create(
        self,
        principal: Optional[str],
        existing_profile: Optional[StudentRecord],
    ) -> bool:
        """Whether ``principal`` may create a profile.

        Admins may create any number of profiles; everyone else may
        create exactly one, which they then own.
        """
        if self.is_admin(principal):
            return True
        return bool(_normalize_email(principal)) and existing_profile is None

    def require_principal(self, principal: Optional[str]) -> str:
        """Return the principal or raise AuthenticationRequired."""
        if not _normalize_email(principal):
            raise AuthenticationRequired("Authentication required")
        return principal.strip()

    def require_mutate(self, principal: Optional[str], record: StudentRecord) -> None:
        """Raise AccessDenied unless ``principal`` may change ``record``."""
        if not self.can_mutate(principal, record):
            logger.warning(
                "PROFILE_MUTATION_DENIED",
                extra={
                    "principal_hash": hash_pii(principal),
                    "record_id": record.id,
                }
            )
            raise AccessDenied("You can only edit your own profile")

    def require_owner(self, principal: Optional[str], record: StudentRecord) -> None:
        """Raise AccessDenied unless ``principal`` owns ``record``.

        Admin rights do not count here.
        """
        if not self.owns(principal, record):
            logger.warning(
                "PROFILE_OWNER_REQUIRED",
                extra={
                    "principal_hash": hash_pii(principal),
                    "record_id": record.id,
                }
            )
            raise AccessDenied("You can only pin your own profile")

    def is_same_user(self, principal: Optional[str], email: Optional[str]) -> bool:
        """Whether ``email`` names the signed-in principal."""
        normalized = _normalize_email(principal)
        return bool(normalized) and normalized == _normalize_email(email)
