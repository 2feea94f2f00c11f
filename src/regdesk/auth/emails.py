"""
regdesk.auth.emails

Synthetic identity emails for admin usernames.
"""

from __future__ import annotations


def admin_email_for_username(username: str, *, domain: str) -> str:
    # Stable mapping: repeated logins for one username always reach the same identity account.
    return f"{username.strip().lower()}@{domain}"
