"""Loading of identifier lists (categories, user groups, user ids) from text files."""

from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, List

from ..errors import ConfigError


def read_identifiers(path: Path | str, *, strict: bool = False) -> List[str]:
    """Return the stripped, non-blank lines of ``path`` in file order.

    With ``strict`` a line with inner whitespace is rejected; category codes
    never contain any, while user ids may.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"File not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"{path} is not valid UTF-8 text") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    identifiers: List[str] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        value = line.strip()
        if not value:
            continue
        if strict and any(ch.isspace() for ch in value):
            raise ConfigError(f"{path}:{lineno}: identifier contains whitespace: {value!r}")
        identifiers.append(value)
    return identifiers


def load_category_set(path: Path | str) -> FrozenSet[str]:
    return frozenset(read_identifiers(path, strict=True))
