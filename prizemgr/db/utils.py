from pathlib import Path
from typing import Optional


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve 'sqlite:///./relative/path' to an absolute sqlite:/// URL.

    Keeps other URL forms unchanged.
    """
    prefix = "sqlite:///./"
    if not url.startswith(prefix):
        return url
    rel = url[len(prefix) :]
    return f"sqlite:///{(project_root / rel).resolve()}"


def env_flag(value: Optional[str], default: bool = False) -> bool:
    """Interpret an environment-style flag such as ``"1"`` or ``"yes"``."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}
