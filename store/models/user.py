from pydantic import BaseModel, Field


class UserInfo(BaseModel):
    """Identity of the caller, used for audit stamping"""

    name: str = Field(description="User name written to audit columns")
