"""Client version reported to the backend as ``x-app-version``.

Resolution order: ``SMIPAY_BUILD_VERSION`` (set by packaging and CI), then the
installed ``smipay-client`` distribution.  Source checkouts append a build
suffix from the Git history (commit count + short SHA) so backend logs can
tell development clients apart.
"""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Final, Mapping
import os
import subprocess

DIST_NAME: Final[str] = "smipay-client"
_FALLBACK_VERSION: Final[str] = "0.1.0"


def _checkout_root() -> Path | None:
    root = Path(__file__).resolve().parents[2]
    return root if (root / ".git").exists() else None


def _git(root: Path, *args: str) -> str | None:
    try:
        completed = subprocess.run(
            ("git", *args),
            cwd=root,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return completed.stdout.strip() or None


def _dist_version() -> str | None:
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return None


def _build_suffix() -> str | None:
    root = _checkout_root()
    if root is None:
        return None
    count = _git(root, "rev-list", "--count", "HEAD")
    if not count:
        return None
    sha = _git(root, "rev-parse", "--short", "HEAD")
    return f"{count}.{sha}" if sha else count


def resolve_version(env: Mapping[str, str] | None = None) -> str:
    env = os.environ if env is None else env
    explicit = (env.get("SMIPAY_BUILD_VERSION") or "").strip()
    if explicit:
        return explicit
    base = _dist_version() or _FALLBACK_VERSION
    suffix = _build_suffix()
    return f"{base}+{suffix}" if suffix else base


APP_VERSION: Final[str] = resolve_version()

__all__ = ["APP_VERSION", "DIST_NAME", "resolve_version"]
