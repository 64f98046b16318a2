from __future__ import annotations

import random
from urllib.parse import quote

from app.core.config import settings


def generate_random_number(digits: int) -> str:
    """n-digit numeric string; only meant to make collisions unlikely, not impossible."""
    return "".join(random.choice("0123456789") for _ in range(digits))


def generate_family_username(family_name: str, digits: int | None = None) -> str:
    suffix = generate_random_number(digits if digits is not None else settings.family_username_suffix_digits)
    return f"{''.join(family_name.split())}{suffix}"


def generate_placeholder_username(full_name: str) -> str:
    prefix = "".join(full_name.split())[: settings.placeholder_username_prefix_length]
    return f"{prefix}{generate_random_number(3)}"


def generate_join_link(family_username: str, state: str, base_url: str | None = None) -> str:
    base = (base_url or settings.join_link_base_url).rstrip("/")
    return f"{base}/families/join/{quote(state.strip().lower(), safe='')}/{quote(family_username, safe='')}"
