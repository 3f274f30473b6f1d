"""Diagnostic artifact bundling for a run."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Sequence

from autofix import actions
from autofix.logging import get_logger

logger = get_logger(__name__)

RETENTION_DAYS = 7


@dataclass(frozen=True)
class UploadResult:
    name: str
    files: tuple[Path, ...]
    location: Optional[Path] = None


class ArtifactUploader(Protocol):
    def upload(self, name: str, files: Sequence[Path], root: Path) -> UploadResult:
        ...


class DirectoryArtifactUploader:
    """Stage artifact bundles under a directory a later workflow step persists.

    Each bundle lands in ``<target_dir>/<name>/`` with paths kept relative to
    ``root`` and a ``manifest.json`` describing the upload.
    """

    def __init__(self, target_dir: Path, *, retention_days: int = RETENTION_DAYS) -> None:
        self.target_dir = Path(target_dir)
        self.retention_days = retention_days

    def upload(self, name: str, files: Sequence[Path], root: Path) -> UploadResult:
        destination = self.target_dir / name
        if destination.exists():
            raise FileExistsError(f"Artifact {name} already exists at {destination}")
        destination.mkdir(parents=True)

        copied: list[Path] = []
        for source in files:
            relative = Path(source).resolve().relative_to(Path(root).resolve())
            target = destination / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if source.is_dir():
                shutil.copytree(source, target)
            else:
                shutil.copy2(source, target)
            copied.append(target)

        manifest = {
            "name": name,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "retention_days": self.retention_days,
            "files": [str(path.relative_to(destination)) for path in copied],
        }
        (destination / "manifest.json").write_text(
            json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8"
        )
        return UploadResult(name=name, files=tuple(copied), location=destination)


def upload_artifacts(
    uploader: ArtifactUploader,
    name: str,
    files: Sequence[Path],
    root: Path,
) -> Optional[UploadResult]:
    """Upload ``files`` under ``name``; failures are reported as warnings only."""

    with actions.group("Upload AutoFix artifacts"):
        if not files:
            logger.info("No artifacts to upload.")
            return None
        try:
            result = uploader.upload(name, files, root)
        except Exception as exc:
            actions.warning(f"Artifact upload failed for {name}: {exc}")
            return None
        logger.info("Uploaded %s file(s) as artifact %s", len(result.files), name)
        return result


__all__ = [
    "ArtifactUploader",
    "DirectoryArtifactUploader",
    "UploadResult",
    "upload_artifacts",
]
