from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


# Roles that may be handed out through an invitation or a role change.
# Ownership is never transferred through those paths.
ASSIGNABLE_ROLES: list[Role] = [Role.ADMIN, Role.MEMBER, Role.VIEWER]

# Roles allowed to manage billing, members and invitations of an org.
MANAGER_ROLES: list[Role] = [Role.OWNER, Role.ADMIN]


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


VALID_PLANS: list[str] = [p.value for p in Plan]


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    TRIALING = "trialing"
