"""Mini README: Caller identity and role scoping.

Structure:
    * Role - enum of the roles the gateway may assert.
    * ActorContext - authenticated caller handed to every core operation.
    * require_role - guard raising ``Forbidden`` for disallowed roles.

Authentication happens upstream; this module only models the identity the
gateway already verified and the role checks the core applies to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .errors import Forbidden, InvalidInput


class Role(str, Enum):
    """Roles recognised across the fleet backend."""

    DRIVER = "driver"
    OPS = "ops"
    OWNER = "owner"
    TOUR_MANAGER = "tour_manager"
    MAINTENANCE = "maintenance"

    @classmethod
    def from_str(cls, value: str) -> "Role":
        """Coerce arbitrary casing into a valid role."""

        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise InvalidInput(f"Unsupported role: {value}") from error


@dataclass(frozen=True, slots=True)
class ActorContext:
    """Authenticated caller: user id, role, and organisation."""

    uid: str
    role: Role
    organisation_id: str

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER


def require_role(actor: ActorContext, allowed: Iterable[Role]) -> None:
    """Raise ``Forbidden`` unless the actor's role is in ``allowed``."""

    allowed = tuple(allowed)
    if actor.role not in allowed:
        raise Forbidden(
            f"Role '{actor.role.value}' is not permitted; expected one of "
            + ", ".join(role.value for role in allowed)
        )
