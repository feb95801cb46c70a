"""Current-user schema."""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel


class CurrentUserResponse(BaseModel):
    """Identity from the auth provider's token, enriched with the profile row."""

    id: uuid.UUID
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
