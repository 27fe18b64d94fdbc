"""
auth/directory.py -- Fixed user directory and credential validation.

The directory is built once at startup from a sequence of User records and is
read-only afterwards: the backing dict is wrapped in a MappingProxyType and no
mutating method exists.

authenticate_user() compares with hmac.compare_digest and always runs one
comparison, against a dummy value when the username is unknown, so response
time does not reveal whether a username exists [C1]. Unknown username and
wrong password raise the same InvalidCredentials.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hmac
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from auth.errors import InvalidCredentials
from auth.models import Principal, Role, User

DEMO_USERS: tuple[User, ...] = (
    User(username="alice", password="alice123", role=Role.user),
    User(username="admin", password="admin123", role=Role.admin),
)

_DUMMY_PASSWORD = "authgate_timing_dummy"


class UserDirectory:
    """Read-only username -> User mapping.

    Usage:
        directory = UserDirectory(DEMO_USERS)
        user = directory.get("alice")
    """

    def __init__(self, users: Iterable[User] = DEMO_USERS) -> None:
        entries: dict[str, User] = {}
        for user in users:
            if user.username in entries:
                raise ValueError(f"Duplicate username in directory: {user.username!r}")
            entries[user.username] = user
        self._users = MappingProxyType(entries)

    def get(self, username: str) -> User | None:
        return self._users.get(username)

    def __contains__(self, username: object) -> bool:
        return username in self._users

    def __iter__(self) -> Iterator[User]:
        return iter(self._users.values())

    def __len__(self) -> int:
        return len(self._users)


def _secret_equals(supplied: str, expected: str) -> bool:
    # JSON may carry lone surrogates, which strict UTF-8 cannot encode.
    return hmac.compare_digest(
        supplied.encode("utf-8", "surrogatepass"),
        expected.encode("utf-8", "surrogatepass"),
    )


def authenticate_user(directory: UserDirectory, username: object, password: object) -> Principal:
    """Validate a username/password pair and return the matching Principal.

    Raises InvalidCredentials for any pair that does not exactly match a
    directory entry, including missing or non-string fields.
    """
    if not isinstance(username, str) or not isinstance(password, str):
        _secret_equals("", _DUMMY_PASSWORD)
        raise InvalidCredentials()

    user = directory.get(username)
    if user is None:
        # Equalize timing -- do NOT return early before comparing [C1]
        _secret_equals(password, _DUMMY_PASSWORD)
        raise InvalidCredentials()
    if not _secret_equals(password, user.password):
        raise InvalidCredentials()
    return Principal(username=user.username, role=user.role)
