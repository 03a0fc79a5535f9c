from .auth import LogoutView, RegisterView
from .me import MeView

__all__ = [
    "RegisterView",
    "LogoutView",
    "MeView",
]
