"""Cryptographic helpers."""

from __future__ import annotations

from modbase_tools.crypto.steam_guard import decode_shared_secret, generate_auth_code

__all__ = ["decode_shared_secret", "generate_auth_code"]
