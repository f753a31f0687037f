# autoflow/core/auth.py
from __future__ import annotations

import hmac
from typing import Optional

from autoflow.core.errors import AuthenticationError
from autoflow.utils.config import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME, Settings, get_settings
from autoflow.utils.logger import get_logger


def check_credentials(username: str, password: str, settings: Optional[Settings] = None) -> bool:
    s = settings or get_settings()
    # compare both fields every time so timing does not reveal which one failed
    user_ok = hmac.compare_digest(username.encode("utf-8"), s.ADMIN_USERNAME.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), s.ADMIN_PASSWORD.encode("utf-8"))
    return user_ok and pass_ok


def login(username: Optional[str], password: Optional[str], settings: Optional[Settings] = None) -> str:
    """
    Validate credentials and return the username.
    Raises AuthenticationError; the hint is only given while the default account is active.
    """
    s = settings or get_settings()
    if username and password is not None and check_credentials(username, password, s):
        return username
    get_logger(__name__).warning(f"Rejected login for user {username!r}")
    msg = "Invalid credentials."
    if s.ADMIN_USERNAME == DEFAULT_ADMIN_USERNAME and s.ADMIN_PASSWORD == DEFAULT_ADMIN_PASSWORD:
        msg += f" Hint: {DEFAULT_ADMIN_USERNAME}/{DEFAULT_ADMIN_PASSWORD}"
    raise AuthenticationError(msg)
