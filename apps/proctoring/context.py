from dataclasses import dataclass

from .exceptions import AuthorizationError
from .models import User

STAFF_ROLES = (User.Role.INSTRUCTOR, User.Role.ADMIN)


@dataclass(frozen=True)
class AuthContext:
    """Caller identity passed explicitly into every exam-session operation."""
    student_id: int
    role: str

    @classmethod
    def from_user(cls, user):
        role = user.role
        if user.is_staff and role not in STAFF_ROLES:
            role = User.Role.ADMIN
        return cls(student_id=user.pk, role=role)

    @classmethod
    def from_request(cls, request):
        return cls.from_user(request.user)

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    def require_staff(self):
        if not self.is_staff:
            raise AuthorizationError('Staff access required.')

    def require_student(self):
        if self.role != User.Role.STUDENT:
            raise AuthorizationError('Only students can take exams.')
