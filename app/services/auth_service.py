from app.database.models import User
from typing import Dict, Optional
import logging


class AuthService:
    # Resolve the acting user for a token subject
    @staticmethod
    async def get_user_by_email(email: str) -> Optional[Dict]:
        user = await User.find_one(User.email == email)
        if not user:
            logging.getLogger(__name__).warning("User not found for email: %s", email)
            return None
        if not user.is_active:
            logging.getLogger(__name__).warning("Inactive user attempted access: %s", email)
            return None

        return {
            "id": str(user.id),
            "email": user.email,
            "full_name": user.full_name,
            "realm": user.realm,
            "branch": str(user.branch) if user.branch else None,
            "permissions": [grant.model_dump() for grant in user.permissions],
        }


auth_service = AuthService()
