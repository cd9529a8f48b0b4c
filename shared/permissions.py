"""
Role-level permission checks.

Role levels:
- 0: technician_l1
- 1: assigner, pm, rma, sale, technician, technician_l2
- 2: admin
- 3: superadmin
"""

import logging
from typing import Dict, Any
from .errors import AuthorizationError

logger = logging.getLogger(__name__)

LEVEL_ADMIN = 2


def get_employee_level(employee: Dict[str, Any]) -> int:
    """Get the employee's role level (0 when unknown)."""
    role_data = employee.get("role_data") or {}
    level = role_data.get("level")
    return level if level is not None else 0


def require_min_level(employee: Dict[str, Any], min_level: int) -> None:
    """
    Require a minimum role level.

    Raises:
        AuthorizationError: If the employee's level is below min_level
    """
    level = get_employee_level(employee)

    if level < min_level:
        logger.warning(f"Employee {employee.get('id')} level {level} below required {min_level}")
        raise AuthorizationError(f"ต้องมีสิทธิ์ระดับ {min_level} ขึ้นไป")


def is_admin(employee: Dict[str, Any]) -> bool:
    """Check if employee is admin or higher."""
    return get_employee_level(employee) >= LEVEL_ADMIN

