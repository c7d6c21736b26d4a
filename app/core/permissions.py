from enum import Enum
from typing import Any, Dict, Optional

from app.core.errors import PermissionDenied


class Capability(str, Enum):
    VIEW = "VIEW"
    VIEW_ALL = "VIEW_ALL"
    UPDATE = "UPDATE"
    AUTHORIZE = "AUTHORIZE"


LOAN_MODULE = "LOAN"


# Checks whether the actor holds a capability on a module; the super realm holds all of them
def is_permitted(user: Optional[Dict[str, Any]], capability: Capability, module: str = LOAN_MODULE) -> bool:
    if not user:
        return False
    if user.get("realm") == "super":
        return True

    wanted = Capability(capability).value
    for grant in user.get("permissions") or []:
        if isinstance(grant, dict):
            grant_module = grant.get("module")
            grant_operation = grant.get("operation")
        else:
            grant_module = getattr(grant, "module", None)
            grant_operation = getattr(grant, "operation", None)
        if grant_module == module and grant_operation == wanted:
            return True
    return False


# Raises PermissionDenied unless the actor holds the capability
def require(user: Optional[Dict[str, Any]], capability: Capability, module: str = LOAN_MODULE) -> None:
    if not is_permitted(user, capability, module):
        raise PermissionDenied(details={"capability": Capability(capability).value, "module": module})
