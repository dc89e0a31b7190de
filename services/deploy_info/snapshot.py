"""
Load-time snapshot: version from the manifest, load time and build label.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from config.settings import Settings
from shared.models import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"


def read_manifest_version(manifest_path: Union[str, Path], default: str = DEFAULT_VERSION) -> str:
    """
    Read the ``version`` field of a package.json style manifest.

    A missing file silently gives ``default``; an unreadable or malformed
    manifest logs a warning and gives ``default``.
    """
    path = Path(manifest_path)
    if not path.exists():
        return default
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read version from {path}: {e}")
        return default

    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version.strip():
        if version is not None:
            logger.warning(f"Ignoring non-string version in {path}: {version!r}")
        return default
    return version.strip()


def resolve_build_label(
    settings: Settings, loaded_at: datetime, short_hash: Optional[str] = None
) -> str:
    """
    Build label from, in order: DEPLOY_BUILD_LABEL, BUILD_NUMBER, the short
    commit hash, a timestamp of ``loaded_at``.
    """
    if settings.deploy.build_label:
        return settings.deploy.build_label
    build_number = os.getenv("BUILD_NUMBER", "").strip()
    if build_number:
        return build_number
    if short_hash and short_hash != "unknown":
        return short_hash
    return loaded_at.strftime("%Y%m%d-%H%M%S")


def build_snapshot(
    settings: Settings,
    short_hash: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Snapshot:
    """Create the immutable snapshot for a deploy info context."""
    loaded_at = now or datetime.now(timezone.utc)
    manifest = Path(settings.file.manifest_path)
    if not manifest.is_absolute():
        manifest = Path(settings.git.repo_path) / manifest
    version = read_manifest_version(manifest, default=settings.file.default_version)
    snapshot = Snapshot(
        loaded_at=loaded_at,
        version=version,
        build_label=resolve_build_label(settings, loaded_at, short_hash),
    )
    logger.debug(f"Snapshot taken: version={snapshot.version} build={snapshot.build_label}")
    return snapshot
