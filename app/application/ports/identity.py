from dataclasses import dataclass

STAFF_ROLES = ("staff", "admin")


@dataclass(frozen=True)
class Caller:
    """Identity supplied by the auth service for the current request."""
    user_id: str
    role: str = "patient"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
