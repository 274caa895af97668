# Football Auth Models
from football_auth.models.base import BaseModel
from football_auth.models.revoked_token import RevokedToken
from football_auth.models.user import User, UserRole

__all__ = [
    "BaseModel",
    "RevokedToken",
    "User",
    "UserRole",
]
