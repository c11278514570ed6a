"""
Prefabricated checks.
"""

from .base import UserCheck


class Role:
    """Role checks that do not look at the user at all."""

    class ALL(UserCheck):
        """Always passes."""

        def ok_user(self, user) -> bool:
            return True

    class NONE(UserCheck):
        """Always fails."""

        def ok_user(self, user) -> bool:
            return False
