from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AuditedModel(BaseModel):
    """Audit columns stamped by repositories on add/update"""

    creation_user: Optional[str] = Field(
        default=None, description="User who created the row"
    )
    creation_date_time: Optional[datetime] = Field(
        default=None, description="Creation timestamp"
    )
    last_update_user: Optional[str] = Field(
        default=None, description="User who last updated the row"
    )
    last_update_date_time: Optional[datetime] = Field(
        default=None, description="Last update timestamp"
    )
