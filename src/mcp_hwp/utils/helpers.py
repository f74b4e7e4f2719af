from __future__ import annotations

import os
from pathlib import Path


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return max(1, parsed)


def env_path(name: str) -> Path | None:
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    return Path(value).expanduser().resolve(strict=False)


def resolve_path(filename: str, *, sandbox_root: Path | None = None) -> Path:
    """Return an absolute path, confined to *sandbox_root* when one is configured."""

    candidate = Path(filename).expanduser()
    if candidate.is_absolute():
        resolved = candidate.resolve(strict=False)
    else:
        resolved = (Path.cwd() / candidate).resolve(strict=False)

    if sandbox_root is not None:
        try:
            resolved.relative_to(sandbox_root)
        except ValueError as exc:
            raise PermissionError(f"path is outside sandbox root '{sandbox_root}': {filename}") from exc

    return resolved


def file_uri(path: Path) -> str:
    return path.resolve(strict=False).as_uri()


def truncate_chars(text: str, max_chars: int | None) -> str:
    if max_chars is None:
        return text
    return text[:max_chars]
