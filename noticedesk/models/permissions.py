"""Workspace capabilities and role grants for noticedesk.

Roles are stored with a free-form list of permission strings. At the domain
boundary these become a closed ``Capability`` set, and the owner role is its
own variant (``AllCapabilities``) instead of being expanded into a list.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Union


class Capability(str, Enum):
    """Named permission a workspace role can grant."""
    VIEW_WALL = "view_wall"
    VIEW_MEMBERS = "view_members"
    VIEW_ENTIRE_GROUPS_ACTIVITY = "view_entire_groups_activity"
    POST_ON_WALL = "post_on_wall"
    REPRESENT_ALLIANCE = "represent_alliance"
    SESSIONS_ASSIGN = "sessions_assign"
    SESSIONS_CLAIM = "sessions_claim"
    SESSIONS_HOST = "sessions_host"
    MANAGE_SESSIONS = "manage_sessions"
    MANAGE_ACTIVITY = "manage_activity"
    MANAGE_QUOTAS = "manage_quotas"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_DOCS = "manage_docs"
    MANAGE_ALLIANCES = "manage_alliances"
    VIEW_SERVERS = "view_servers"
    VIEW_PROMOTIONS = "view_promotions"
    MANAGE_PROMOTIONS = "manage_promotions"
    ADMIN = "admin"


@dataclass(frozen=True)
class AllCapabilities:
    """Grant held by the workspace owner role."""

    def allows(self, capability: Capability) -> bool:
        return True

    def capabilities(self) -> FrozenSet[Capability]:
        return frozenset(Capability)


@dataclass(frozen=True)
class ExplicitCapabilities:
    """Grant listing exactly the capabilities a role holds."""

    granted: FrozenSet[Capability] = field(default_factory=frozenset)

    def allows(self, capability: Capability) -> bool:
        return capability in self.granted

    def capabilities(self) -> FrozenSet[Capability]:
        return self.granted


RoleGrant = Union[AllCapabilities, ExplicitCapabilities]


def parse_capabilities(values: Iterable[str]) -> FrozenSet[Capability]:
    """Convert stored permission strings to capabilities, dropping unknown ones."""
    known = {c.value: c for c in Capability}
    return frozenset(known[v] for v in (values or []) if v in known)


def grant_for_role(permissions: Iterable[str], is_owner_role: bool) -> RoleGrant:
    """Build the grant for a stored role."""
    if is_owner_role:
        return AllCapabilities()
    return ExplicitCapabilities(parse_capabilities(permissions))
