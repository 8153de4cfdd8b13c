"""Admin elevation policy.

Decides from an email address alone whether an identity carries admin
capability. Applied at registration (initial flag) and again at every
login, where its verdict overwrites whatever flag is stored. Admin status
is therefore derived from the policy, not durable in the user record.

Policies are plain callables ``(email) -> bool`` so a role table can
replace the single-address rule without touching the gates.
"""

from typing import Callable

ElevationPolicy = Callable[[str], bool]


def normalize_email(email: str) -> str:
    return email.strip().lower()


class SingleAdminEmailRule:
    """Exactly one designated address is admin, compared case-insensitively."""

    def __init__(self, admin_email: str):
        self.admin_email = normalize_email(admin_email)

    def __call__(self, email: str) -> bool:
        return normalize_email(email) == self.admin_email

    def __repr__(self) -> str:
        return f"SingleAdminEmailRule({self.admin_email!r})"
