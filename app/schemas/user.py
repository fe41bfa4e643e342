from pydantic import BaseModel

from app.core.constants import RoleEnum


class UserContext(BaseModel):
    """Caller identity handed to the core by the authorization boundary."""
    user_id: int
    role: RoleEnum

    @property
    def is_student(self) -> bool:
        return self.role == RoleEnum.STUDENT

    @property
    def is_teacher(self) -> bool:
        return self.role == RoleEnum.TEACHER
