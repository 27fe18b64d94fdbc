"""Unit tests for auth/directory.py -- user directory and credential validation.

Covers:
- Every demo user logs in with their recorded role
- Wrong password, unknown user, swapped fields and non-string inputs all fail
  with the same InvalidCredentials error and message
- Directory is read-only and rejects duplicate usernames
"""

import pytest

from auth.directory import DEMO_USERS, UserDirectory, authenticate_user
from auth.errors import InvalidCredentials, Unauthenticated
from auth.models import Principal, Role, User


@pytest.fixture
def directory() -> UserDirectory:
    return UserDirectory(DEMO_USERS)


class TestAuthenticateUser:
    @pytest.mark.parametrize("user", DEMO_USERS, ids=lambda u: u.username)
    def test_registered_users_get_directory_role(self, directory: UserDirectory, user: User) -> None:
        principal = authenticate_user(directory, user.username, user.password)
        assert principal == Principal(username=user.username, role=user.role)

    def test_demo_roles(self, directory: UserDirectory) -> None:
        assert authenticate_user(directory, "alice", "alice123").role is Role.user
        assert authenticate_user(directory, "admin", "admin123").role is Role.admin

    @pytest.mark.parametrize(
        "username,password",
        [
            ("alice", "wrong"),
            ("nobody", "alice123"),
            ("alice", "admin123"),
            ("admin", "alice123"),
            ("Alice", "alice123"),
            ("alice", "alice123 "),
            ("", ""),
            (None, "alice123"),
            ("alice", None),
            (123, "alice123"),
        ],
    )
    def test_non_matching_pairs_fail_identically(self, directory: UserDirectory, username, password) -> None:
        with pytest.raises(InvalidCredentials) as exc_info:
            authenticate_user(directory, username, password)
        assert exc_info.value.message == "Invalid username or password"
        assert exc_info.value.code == "bad_credentials"

    def test_invalid_credentials_is_unauthenticated(self) -> None:
        assert issubclass(InvalidCredentials, Unauthenticated)

    def test_non_ascii_password_does_not_crash(self, directory: UserDirectory) -> None:
        with pytest.raises(InvalidCredentials):
            authenticate_user(directory, "alice", "pässwörd")

    def test_lone_surrogate_fails_like_any_mismatch(self, directory: UserDirectory) -> None:
        with pytest.raises(InvalidCredentials):
            authenticate_user(directory, "alice", "\ud800")
        with pytest.raises(InvalidCredentials):
            authenticate_user(directory, "\ud800", "alice123")


class TestUserDirectory:
    def test_lookup(self, directory: UserDirectory) -> None:
        assert directory.get("alice").role is Role.user
        assert directory.get("mallory") is None
        assert "admin" in directory
        assert len(directory) == 2

    def test_duplicate_usernames_rejected(self) -> None:
        users = [User("bob", "x", Role.user), User("bob", "y", Role.admin)]
        with pytest.raises(ValueError):
            UserDirectory(users)

    def test_backing_mapping_is_read_only(self, directory: UserDirectory) -> None:
        with pytest.raises(TypeError):
            directory._users["mallory"] = User("mallory", "x", Role.admin)

    def test_users_are_immutable(self, directory: UserDirectory) -> None:
        with pytest.raises(AttributeError):
            directory.get("alice").role = Role.admin
