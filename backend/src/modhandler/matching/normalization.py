"""Shared normalization utilities for folder name matching."""

import re
import unicodedata

NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
PATH_SEPARATOR_RE = re.compile(r"[\\/]")


def strip_diacritics(text: str) -> str:
    """Decompose to NFD and drop combining marks.

    >>> strip_diacritics("Élodie")
    'Elodie'
    """
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_folder_name(name: str) -> str:
    """Lowercase, strip diacritics and drop everything outside ``[a-z0-9]``.

    Idempotent: normalizing an already-normalized string returns it unchanged.

    >>> normalize_folder_name("Yuk11sh1d4_mods")
    'yuk11sh1d4mods'
    >>> normalize_folder_name("Mr. Miagí (old)")
    'mrmiagiold'
    """
    return NON_ALNUM_RE.sub("", strip_diacritics(name.lower()))


def folder_basename(path: str) -> str:
    """Last non-empty segment of a path, splitting on either separator.

    >>> folder_basename("C:\\\\mods\\\\Synae\\\\")
    'Synae'
    >>> folder_basename("/mods/HCoel")
    'HCoel'
    """
    parts = [p for p in PATH_SEPARATOR_RE.split(path) if p]
    return parts[-1] if parts else ""
