from app.core.config import Settings, settings
from app.core.errors import (
    ErrorKind,
    LoanError,
    ValidationFailed,
    PreconditionFailed,
    PermissionDenied,
    EntityNotFound,
    InvalidTransition,
)
from app.core.permissions import Capability, is_permitted, require
from app.core.security import create_access_token, decode_token
