"""Tests for the admin bootstrap script."""

import importlib.util
from pathlib import Path

import pytest

from schoolhub.service.runtime import get_runtime

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "bootstrap_admin.py"


@pytest.fixture(scope="module")
def bootstrap():
    spec = importlib.util.spec_from_file_location("bootstrap_admin", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize(
    "password,ok",
    [("Sh0rt!", False), ("alllowercaseletters", False), ("Longer-Password-1", True)],
)
def test_validate_password(bootstrap, password, ok):
    assert bootstrap.validate_password(password) is ok


def test_creates_admin(bootstrap):
    result = bootstrap.bootstrap_admin("root", "Longer-Password-1", ["manage_users"])
    assert result["status"] == "created"
    user = get_runtime().credentials.get_user("root")
    assert user.role == "admin"
    assert user.permissions == ["manage_users"]
    assert get_runtime().auth.login("root", "Longer-Password-1").ok


def test_existing_admin_left_alone(bootstrap):
    bootstrap.bootstrap_admin("root", "Longer-Password-1")
    assert bootstrap.bootstrap_admin("root", "Another-Password-2")["status"] == "already_admin"


def test_existing_student_not_promoted(bootstrap):
    get_runtime().auth.register(
        "alice", "pw1", "student", {"studentId": "S1", "course": "CS", "year": 1, "group": "G1"}
    )
    assert bootstrap.bootstrap_admin("alice", "Longer-Password-1")["status"] == "exists_other_role"
    assert get_runtime().credentials.get_user("alice").role == "student"


def test_dry_run_creates_nothing(bootstrap):
    assert bootstrap.bootstrap_admin("root", "Longer-Password-1", dry_run=True)["status"] == "dry_run"
    assert get_runtime().credentials.get_user("root") is None
