"""
In-process models for authentication state.
Stored documents are described by the pydantic records in schemas.py.
"""
from typing import Any, Dict, Optional


class Principal:
    """The identity provider's view of a signed-in user."""

    def __init__(
        self,
        uid: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None
    ):
        self.uid = uid
        self.email = email
        self.display_name = display_name
        self.photo_url = photo_url

    @classmethod
    def from_auth_user(cls, user: Any) -> "Principal":
        """Build a principal from a Supabase Auth user object."""
        metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            uid=user.id,
            email=getattr(user, "email", None),
            display_name=(
                metadata.get("display_name")
                or metadata.get("full_name")
                or metadata.get("name")
            ),
            photo_url=metadata.get("avatar_url") or metadata.get("picture"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "email": self.email,
            "display_name": self.display_name,
            "photo_url": self.photo_url,
        }

    def __eq__(self, other):
        return isinstance(other, Principal) and other.uid == self.uid

    def __hash__(self):
        return hash(self.uid)

    def __repr__(self):
        return f"Principal(uid={self.uid!r}, email={self.email!r})"


class AuthResult:
    """Outcome of a sign-up or federated sign-in."""

    def __init__(self, success: bool, error: Optional[str] = None):
        self.success = success
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        result = {"success": self.success}
        if self.error:
            result["error"] = self.error
        return result


class SessionSnapshot:
    """Consistent read of a session store's state."""

    def __init__(self, current_user: Optional[Principal], is_admin: bool, loading: bool):
        self.current_user = current_user
        self.is_admin = is_admin
        self.loading = loading

    @property
    def authenticated(self) -> bool:
        return self.current_user is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authenticated": self.authenticated,
            "user": self.current_user.to_dict() if self.current_user else None,
            "is_admin": self.is_admin,
            "loading": self.loading,
        }


ANONYMOUS = SessionSnapshot(current_user=None, is_admin=False, loading=False)
