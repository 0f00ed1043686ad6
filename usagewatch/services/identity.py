from typing import Optional

from usagewatch.utils.constants import OWNER_ID


class IdentityProvider:

    # authenticated-identity lookup used by scheduled passes
    # None -> nobody signed in, the pass is skipped

    def __init__(self, owner_id: Optional[str] = OWNER_ID):
        self._owner_id = owner_id or None

    def current_owner_id(self) -> Optional[str]:
        return self._owner_id

    def sign_in(self, owner_id: str) -> None:
        self._owner_id = owner_id or None

    def sign_out(self) -> None:
        self._owner_id = None
