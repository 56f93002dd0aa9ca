"""Per-image annotation records on disk.

One JSON file per source image, named after a hash of the image reference:
``{"lines", "polygons", "textures", "ratio", "referenceId"}``.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Union

from ..core.model import AnnotationSet

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


class AnnotationStoreError(Exception):
    """Raised when an annotation record cannot be read, written or deleted."""


def normalize_image_ref(image_ref: str) -> str:
    """Absolute path for local files; URLs and data URIs verbatim."""
    if "://" in image_ref or image_ref.startswith("data:"):
        return image_ref
    return str(Path(image_ref).expanduser().resolve())


def record_key(image_ref: str) -> str:
    digest = hashlib.sha256(normalize_image_ref(image_ref).encode("utf-8")).hexdigest()
    return digest[:32]


def dumps_record(annotations: AnnotationSet) -> str:
    return json.dumps(annotations.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)


class AnnotationStore:
    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory).expanduser()

    def path_for(self, image_ref: str) -> Path:
        return self.directory / f"{record_key(image_ref)}{RECORD_SUFFIX}"

    def load(self, image_ref: str) -> AnnotationSet:
        """Return the stored annotations, or an empty set when none exist yet."""
        path = self.path_for(image_ref)
        if not path.exists():
            return AnnotationSet()
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            annotations = AnnotationSet.from_dict(payload)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable annotation record %s: %s", path, exc)
            raise AnnotationStoreError(f"Failed to read annotations: {exc}") from exc
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Malformed annotation record %s: %s", path, exc)
            raise AnnotationStoreError(f"Malformed annotation record: {path.name}") from exc
        logger.debug("Loaded annotations for %s from %s", image_ref, path)
        return annotations

    def save(self, image_ref: str, annotations: AnnotationSet) -> Path:
        path = self.path_for(image_ref)
        tmp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(dumps_record(annotations))
            os.replace(tmp_path, path)
        except OSError as exc:
            raise AnnotationStoreError(f"Failed to write annotations: {exc}") from exc
        logger.debug("Saved annotations for %s to %s", image_ref, path)
        return path

    def delete(self, image_ref: str) -> bool:
        path = self.path_for(image_ref)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise AnnotationStoreError(f"Failed to delete annotations: {exc}") from exc
        logger.debug("Deleted annotations for %s", image_ref)
        return True
