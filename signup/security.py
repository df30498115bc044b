"""Admin passcode gate for the sign-up dashboard.

This is a single shared passcode, not authentication: anyone who knows the
code can manage the list, and nothing identifies who did.
"""
from __future__ import annotations

import secrets
from typing import Optional


class AdminGate:
    """Compare submitted admin codes using constant-time comparisons."""

    def __init__(self, passcode: Optional[str]):
        cleaned = (passcode or "").strip()
        self._passcode = cleaned or None

    @property
    def enabled(self) -> bool:
        return self._passcode is not None

    def check(self, provided: Optional[str]) -> bool:
        if self._passcode is None or provided is None:
            return False
        return secrets.compare_digest(provided.encode("utf-8"), self._passcode.encode("utf-8"))


__all__ = ["AdminGate"]
