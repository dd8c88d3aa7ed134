# === event_inspect/file_discovery.py ===

import logging
import os
from typing import List, Tuple

from event_inspect.errors import ErrorReport, InspectionAborted, MALFORMED_ASSET, MALFORMED_META
from event_inspect.inspector import SourceFile, is_asset_file, is_meta_file

logger = logging.getLogger(__name__)


def discover_asset_files(root_dir: str) -> List[str]:
    """
    Walks root_dir recursively and returns every asset and meta file, as paths
    relative to root_dir with forward slashes, sorted. Hidden directories and
    Unity's "Library" cache are not entered.
    """
    if not os.path.isdir(root_dir):
        raise InspectionAborted(f"'{root_dir}' is not a directory")
    try:
        os.listdir(root_dir)
    except OSError as e:
        raise InspectionAborted(f"cannot read directory '{root_dir}': {e}") from e

    def _on_error(err: OSError):
        logger.warning(f"Cannot list '{err.filename}': {err.strerror}")

    found = []
    for dirpath, dirnames, filenames in os.walk(root_dir, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d != "Library")
        for fname in filenames:
            rel = os.path.relpath(os.path.join(dirpath, fname), root_dir).replace(os.sep, "/")
            if is_asset_file(rel) or is_meta_file(rel):
                found.append(rel)
    return sorted(found)


def read_asset_files(root_dir: str) -> Tuple[List[SourceFile], List[ErrorReport]]:
    """
    Read every discovered file fully into memory. A file that cannot be read
    becomes an error report for that file; only an unusable root is fatal.
    """
    files: List[SourceFile] = []
    errors: List[ErrorReport] = []
    for rel in discover_asset_files(root_dir):
        path = os.path.join(root_dir, *rel.split("/"))
        try:
            with open(path, "rb") as f:
                files.append((rel, f.read()))
        except OSError as e:
            logger.warning(f"Could not open '{path}': {e}")
            kind = MALFORMED_META if is_meta_file(rel) else MALFORMED_ASSET
            errors.append(ErrorReport(kind=kind, source=rel, asset_id=None, detail=f"could not read file: {e.strerror or e}"))
    logger.info(f"Read {len(files)} file(s) under '{root_dir}'.")
    return files, errors
