from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

import db.crud as crud
from db.analytics import admin_login
from db.database import Database
from db.models import Employee


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - employee: the logged-in employee, None for admin or before login
      - role: "employee" | "admin" | None if nobody is logged in
      - cart_id: the cart the employee is currently building, if any
    """

    employee: Optional[Employee] = None
    role: Optional[Literal["employee", "admin"]] = None

    cart_id: Optional[int] = None

    @property
    def employee_pk(self) -> Optional[int]:
        return self.employee.id if self.employee else None

    async def login_employee(self, db: Database, employee_id: str, password: str) -> bool:
        """Log an employee in. Returns True on success."""
        employee = await crud.login(db, employee_id, password)
        if employee is None:
            return False
        self.employee = employee
        self.role = "employee"
        self.cart_id = None
        return True

    def login_admin(self, username: str, password: str) -> bool:
        if not admin_login(username, password):
            return False
        self.employee = None
        self.role = "admin"
        self.cart_id = None
        return True

    def select_cart(self, cart_id: Optional[int]) -> None:
        self.cart_id = cart_id

    def logout(self) -> None:
        self.employee = None
        self.role = None
        self.cart_id = None
