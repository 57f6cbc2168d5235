from enum import Enum


class Roles(str, Enum):
    """Dashboard roles: Viewer reads responses and analytics, Editor sends invitations and deletes responses."""
    VIEWER = "Viewer"
    EDITOR = "Editor"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def names(cls) -> list:
        return [r.value for r in cls]
