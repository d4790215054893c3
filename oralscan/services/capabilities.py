"""Which role may invoke which operation. Both roles share one dispatcher; only this table differs."""
from dataclasses import dataclass
from enum import Enum

from oralscan.core.errors import PermissionDenied
from oralscan.models import Role
from oralscan.schemas import Principal


class Capability(str, Enum):
    SUBMIT_SCAN = "submit_scan"
    FETCH_REVIEW_FEED = "fetch_review_feed"
    EXPORT_REPORT = "export_report"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.CAPTURE: frozenset({Capability.SUBMIT_SCAN}),
    Role.REVIEW: frozenset({Capability.FETCH_REVIEW_FEED, Capability.EXPORT_REPORT}),
}


@dataclass(frozen=True)
class Caller:
    principal: Principal
    role: Role


def allowed(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def ensure_capability(role: Role, capability: Capability) -> None:
    if not allowed(role, capability):
        raise PermissionDenied(f"Role '{role.value}' is not permitted to {capability.value.replace('_', ' ')}.")
