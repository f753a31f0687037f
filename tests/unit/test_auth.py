import pytest

from autoflow.core.auth import check_credentials, login
from autoflow.core.errors import AuthenticationError
from autoflow.utils.config import Settings


def test_default_account(settings):
    assert check_credentials("admin", "admin", settings)
    assert not check_credentials("admin", "nope", settings)
    assert login("admin", "admin", settings) == "admin"


def test_rejection_includes_hint_for_default_account(settings):
    with pytest.raises(AuthenticationError) as exc:
        login("admin", "wrong", settings)
    assert str(exc.value) == "Invalid credentials. Hint: admin/admin"


def test_missing_username_is_rejected(settings):
    with pytest.raises(AuthenticationError):
        login(None, "admin", settings)


def test_custom_account_gives_no_hint(tmp_path):
    s = Settings(DATA_DIR=tmp_path, ADMIN_USERNAME="ops", ADMIN_PASSWORD="s3cret")
    assert login("ops", "s3cret", s) == "ops"
    with pytest.raises(AuthenticationError) as exc:
        login("admin", "admin", s)
    assert str(exc.value) == "Invalid credentials."
