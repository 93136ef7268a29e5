from __future__ import annotations

import os
from typing import Iterable, Mapping

from trade_dashboard.config.app_config import AccountSettings
from trade_dashboard.models import AccountInfo


def resolve_account_name(
    account_name: str | None = None,
    env: Mapping[str, str] | None = None,
    settings: AccountSettings | None = None,
) -> str | None:
    env = env if env is not None else os.environ
    candidates = (
        account_name,
        env.get("TRADE_DASHBOARD_ACCOUNT"),
        settings.default_account if settings else None,
    )
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def select_active_account(
    accounts: Iterable[AccountInfo],
    current: str | None,
    fallback: str | None = None,
) -> str | None:
    """Keep an explicitly chosen account, else take the most recently active one."""
    if current:
        return current
    account_list = list(accounts)
    if account_list:
        return account_list[0].account
    return fallback


def find_account(accounts: Iterable[AccountInfo], name: str | None) -> AccountInfo | None:
    if not name:
        return None
    for item in accounts:
        if item.account == name:
            return item
    return None
