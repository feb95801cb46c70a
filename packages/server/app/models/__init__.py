# Table definitions, imported so Alembic and init_db see the full metadata.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .profile import Profile  # noqa: F401
from .organization import Organization  # noqa: F401
from .organization_member import OrganizationMember  # noqa: F401
from .subscription import Subscription  # noqa: F401
from .invitation import Invitation  # noqa: F401
