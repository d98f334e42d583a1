"""Caller identity as supplied by the identity collaborator.

The marketplace never authenticates anyone itself; it receives an already
verified ``{id, role}`` pair and only uses it for authorization decisions.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError


class Role(Enum):
    CONSUMER = "consumer"
    FARMER = "farmer"
    VENDOR = "vendor"
    ADMIN = "admin"


_SELLER_ROLES = {Role.FARMER, Role.VENDOR}


@dataclass(frozen=True)
class Caller:
    """An authenticated user acting on the marketplace."""

    id: str
    role: Role

    def __post_init__(self):
        if not self.id:
            raise ValidationError({"caller": ["Caller id is required"]})
        if not isinstance(self.role, Role):
            try:
                object.__setattr__(self, "role", Role(self.role))
            except ValueError:
                raise ValidationError({"caller": [f"Unknown role: {self.role}"]}) from None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role in _SELLER_ROLES
