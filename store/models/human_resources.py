from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Employee(BaseModel):
    """Employee who can be assigned to an order"""

    employee_id: Optional[int] = Field(
        default=None, description="Store-generated employee identifier"
    )
    first_name: Optional[str] = Field(default=None, description="First name")
    middle_name: Optional[str] = Field(default=None, description="Middle name")
    last_name: Optional[str] = Field(default=None, description="Last name")
    birth_date: Optional[datetime] = Field(default=None, description="Birth date")
