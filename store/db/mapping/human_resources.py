"""Entity maps for human resources tables."""

from sqlalchemy import Column, DateTime, Integer, String

from store.db.mapping.base import EntityMap
from store.models.human_resources import Employee


class EmployeeMap(EntityMap[Employee]):
    entity_type = Employee
    table_name = "employees"
    key = ("employee_id",)
    identity = "employee_id"

    def columns(self):
        return [
            Column("employee_id", Integer, primary_key=True, autoincrement=True),
            Column("first_name", String(25), nullable=False),
            Column("middle_name", String(25)),
            Column("last_name", String(25), nullable=False),
            Column("birth_date", DateTime),
        ]
