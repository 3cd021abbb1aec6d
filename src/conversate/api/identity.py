"""Request identity resolution.

The upstream auth proxy forwards the signed-in user as headers. Requests
without a user id are served as the guest user rather than rejected.
"""

from dataclasses import dataclass

from fastapi import Request

GUEST_USER_ID = "guest"


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str = ""
    name: str = ""

    @property
    def is_guest(self) -> bool:
        return self.user_id == GUEST_USER_ID


GUEST = Identity(user_id=GUEST_USER_ID, name="Guest")


def get_identity(request: Request) -> Identity:
    user_id = request.headers.get("X-User-Id", "").strip()
    if not user_id:
        return GUEST
    return Identity(
        user_id=user_id,
        email=request.headers.get("X-User-Email", "").strip(),
        name=request.headers.get("X-User-Name", "").strip(),
    )
