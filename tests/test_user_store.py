"""Unit tests for auth/store.py -- account persistence and the last-admin rule.

Covers:
- create_user() assigns ids and rejects duplicate usernames (ConflictError)
- list_users() never exposes more than the stored fields; newest first
- update_role(): demoting the only admin fails, demoting one of two succeeds
- delete_user(): deleting the only admin fails; non-admins delete freely
- NotFoundError for unknown ids
- Concurrent demotion/deletion of two admins leaves exactly one admin
- create_default_accounts(): one-time setup, skips taken usernames
"""

import threading

import pytest

from auth.models import Role, User
from auth.store import UserStore
from core.errors import ConflictError, LastAdminError, NotFoundError


def _user(username: str, role: Role = Role.user) -> User:
    # Store tests do not need a real bcrypt digest.
    return User(username=username, hashed_password="$2b$10$placeholder", role=role.value)


# ---------------------------------------------------------------------------
# Creation and lookup
# ---------------------------------------------------------------------------


def test_create_and_fetch_user(user_store: UserStore):
    user_id = user_store.create_user(_user("alice"))
    fetched = user_store.get_by_id(user_id)
    assert fetched is not None
    assert fetched.username == "alice"
    assert fetched.role == "user"
    assert fetched.created_at
    assert user_store.get_by_username("alice").id == user_id
    assert user_store.get_by_username("bob") is None
    assert user_store.has_users()


def test_duplicate_username_is_conflict(user_store: UserStore):
    user_store.create_user(_user("alice"))
    with pytest.raises(ConflictError) as exc_info:
        user_store.create_user(_user("alice", Role.admin))
    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "Username already exists"
    assert user_store.count_by_role("admin") == 0


def test_list_users_newest_first(user_store: UserStore):
    for name in ("alice", "bob", "carol"):
        user_store.create_user(_user(name))
    assert [u.username for u in user_store.list_users()] == ["carol", "bob", "alice"]


# ---------------------------------------------------------------------------
# Last-admin rule
# ---------------------------------------------------------------------------


def test_demoting_sole_admin_is_rejected(user_store: UserStore):
    admin_id = user_store.create_user(_user("root", Role.admin))
    with pytest.raises(LastAdminError) as exc_info:
        user_store.update_role(admin_id, Role.user.value)
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Cannot remove the last admin user"
    assert user_store.get_by_id(admin_id).role == "admin"


def test_demoting_one_of_two_admins_succeeds(user_store: UserStore):
    first = user_store.create_user(_user("root", Role.admin))
    second = user_store.create_user(_user("ops", Role.admin))
    user_store.update_role(first, Role.user.value)
    assert user_store.get_by_id(first).role == "user"
    # The remaining admin is now the last one.
    with pytest.raises(LastAdminError):
        user_store.update_role(second, Role.user.value)
    assert user_store.count_by_role("admin") == 1


def test_admin_to_admin_is_a_no_op(user_store: UserStore):
    admin_id = user_store.create_user(_user("root", Role.admin))
    user_store.update_role(admin_id, Role.admin.value)
    assert user_store.get_by_id(admin_id).role == "admin"


def test_promoting_user(user_store: UserStore):
    user_store.create_user(_user("root", Role.admin))
    user_id = user_store.create_user(_user("alice"))
    user_store.update_role(user_id, Role.admin.value)
    assert user_store.count_by_role("admin") == 2


def test_deleting_sole_admin_is_rejected(user_store: UserStore):
    admin_id = user_store.create_user(_user("root", Role.admin))
    with pytest.raises(LastAdminError) as exc_info:
        user_store.delete_user(admin_id)
    assert exc_info.value.message == "Cannot delete the last admin user"
    assert user_store.get_by_id(admin_id) is not None


def test_deleting_admin_when_another_remains(user_store: UserStore):
    first = user_store.create_user(_user("root", Role.admin))
    user_store.create_user(_user("ops", Role.admin))
    user_store.delete_user(first)
    assert user_store.get_by_id(first) is None
    assert user_store.count_by_role("admin") == 1


def test_deleting_plain_user(user_store: UserStore):
    user_store.create_user(_user("root", Role.admin))
    user_id = user_store.create_user(_user("alice"))
    user_store.delete_user(user_id)
    assert user_store.get_by_username("alice") is None


def test_unknown_user_is_not_found(user_store: UserStore):
    with pytest.raises(NotFoundError):
        user_store.update_role(999, Role.admin.value)
    with pytest.raises(NotFoundError):
        user_store.delete_user(999)


@pytest.mark.parametrize(
    "remove",
    [
        lambda store, user_id: store.update_role(user_id, Role.user.value),
        lambda store, user_id: store.delete_user(user_id),
    ],
    ids=["demote", "delete"],
)
def test_concurrent_removal_of_two_admins_keeps_one(tmp_path, remove):
    # A file-backed database so each thread gets its own connection.
    store = UserStore(f"sqlite:///{tmp_path / 'users.db'}")
    admin_ids = [store.create_user(_user(name, Role.admin)) for name in ("root", "ops")]
    barrier = threading.Barrier(len(admin_ids))
    outcomes: list[str] = []

    def worker(user_id: int) -> None:
        barrier.wait()
        try:
            remove(store, user_id)
        except LastAdminError:
            outcomes.append("refused")
        else:
            outcomes.append("removed")

    threads = [threading.Thread(target=worker, args=(user_id,)) for user_id in admin_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    try:
        assert sorted(outcomes) == ["refused", "removed"]
        assert store.count_by_role(Role.admin.value) == 1
    finally:
        store.close()


# ---------------------------------------------------------------------------
# First-run setup
# ---------------------------------------------------------------------------


def test_default_accounts_created_once(user_store: UserStore):
    accounts = [_user("admin", Role.admin), _user("user")]
    assert user_store.create_default_accounts(accounts) == ["admin", "user"]
    assert user_store.count_by_role("admin") == 1

    with pytest.raises(ConflictError) as exc_info:
        user_store.create_default_accounts(accounts)
    assert exc_info.value.code == "setup_completed"


def test_default_accounts_skip_taken_usernames(user_store: UserStore):
    user_store.create_user(_user("user"))
    created = user_store.create_default_accounts([_user("admin", Role.admin), _user("user")])
    assert created == ["admin"]
    assert user_store.get_by_username("user").role == "user"


def test_setup_refused_when_an_admin_already_exists(user_store: UserStore):
    user_store.create_user(_user("root", Role.admin))
    with pytest.raises(ConflictError):
        user_store.create_default_accounts([_user("admin", Role.admin)])
    assert user_store.get_by_username("admin") is None
