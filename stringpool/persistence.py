"""
JSON interchange document for translation pools.

The whole pool is written in one atomic rewrite (temp file in the target
directory, then os.replace). Metadata is recomputed on every write and ignored
on read.
"""
import json
import os
import tempfile
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import PoolLoadError, PoolSaveError
from .logger import get_logger
from .models import (
    ContextReference,
    Placeholder,
    Pool,
    PoolMetadata,
    TranslationStatus,
    TranslationUnit,
    UnitKind,
)
from .stats import compute_statistics

logger = get_logger(__name__)

SUPPORTED_MAJOR_VERSION = "2"


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def metadata_to_dict(metadata: PoolMetadata) -> Dict[str, Any]:
    return {
        "total_units": metadata.total_units,
        "translated_count": metadata.translated_count,
        "pending_count": metadata.pending_count,
        "total_contexts": metadata.total_contexts,
        "file_statistics": dict(metadata.file_statistics),
        "status_statistics": dict(metadata.status_statistics),
    }


def unit_to_dict(unit: TranslationUnit) -> Dict[str, Any]:
    return {
        "key": unit.key,
        "source": unit.source_text,
        "target": unit.target_text,
        "kind": unit.kind.value,
        "placeholders": [
            {"index": p.index, "expression": p.expression, "token": p.token}
            for p in unit.placeholders
        ],
        "status": unit.status.value,
        "extracted_at": _dt_to_str(unit.extracted_at),
        "translated_at": _dt_to_str(unit.translated_at),
        "note": unit.note,
        "usage_count": unit.usage_count,
        "contexts": [
            {
                "file_path": c.file_path,
                "line": c.line,
                "enclosing_scope": c.enclosing_scope,
                "note": c.note,
            }
            for c in unit.contexts
        ],
    }


def unit_from_dict(data: Dict[str, Any]) -> TranslationUnit:
    return TranslationUnit(
        key=data["key"],
        source_text=data["source"],
        target_text=data["target"],
        kind=UnitKind(data["kind"]),
        extracted_at=_dt_from_str(data["extracted_at"]),
        placeholders=[
            Placeholder(index=p["index"], expression=p["expression"], token=p.get("token", ""))
            for p in data.get("placeholders", [])
        ],
        status=TranslationStatus(data.get("status", TranslationStatus.PENDING.value)),
        contexts=[
            ContextReference(
                file_path=c["file_path"],
                line=c["line"],
                enclosing_scope=c.get("enclosing_scope", ""),
                note=c.get("note"),
            )
            for c in data.get("contexts", [])
        ],
        translated_at=_dt_from_str(data.get("translated_at")),
        note=data.get("note"),
    )


def pool_to_dict(pool: Pool) -> Dict[str, Any]:
    return {
        "project_name": pool.project_name,
        "source_language": pool.source_language,
        "target_language": pool.target_language,
        "format_version": pool.format_version,
        "created_at": _dt_to_str(pool.created_at),
        "updated_at": _dt_to_str(pool.updated_at),
        "metadata": metadata_to_dict(compute_statistics(pool.units)),
        "translations": [unit_to_dict(u) for u in pool.units],
    }


def pool_from_dict(data: Dict[str, Any]) -> Pool:
    """
    Rebuilds a pool from its document form.

    Raises:
        PoolLoadError: missing fields, bad values or an unsupported format version.
    """
    try:
        version = str(data.get("format_version", ""))
        if version.split(".")[0] != SUPPORTED_MAJOR_VERSION:
            raise PoolLoadError(f"Unsupported pool format version: '{version}'")

        units = [unit_from_dict(u) for u in data.get("translations", [])]
        return Pool(
            project_name=data["project_name"],
            source_language=data["source_language"],
            target_language=data["target_language"],
            format_version=version,
            created_at=_dt_from_str(data["created_at"]),
            updated_at=_dt_from_str(data["updated_at"]),
            units=units,
            # never trusted from disk
            metadata=compute_statistics(units),
        )
    except PoolLoadError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise PoolLoadError(f"Invalid pool document: {e!r}") from e


def save_pool(pool: Pool, file_path: str):
    """
    Atomically writes the pool document (write temp file -> rename).

    The pool's metadata is refreshed as a side effect; nothing else is changed.
    """
    pool.metadata = compute_statistics(pool.units)
    payload = pool_to_dict(pool)

    dir_name = os.path.dirname(os.path.abspath(file_path))
    temp_name = None
    try:
        os.makedirs(dir_name, exist_ok=True)
        # Create the temp file in the same directory so the rename stays atomic
        with tempfile.NamedTemporaryFile(mode="w", dir=dir_name, delete=False,
                                         encoding="utf-8", suffix=".tmp") as tf:
            temp_name = tf.name
            json.dump(payload, tf, indent=2, ensure_ascii=False)
        os.replace(temp_name, file_path)
    except OSError as e:
        logger.error(f"Saving pool failed: {e}")
        if temp_name and os.path.exists(temp_name):
            os.remove(temp_name)
        raise PoolSaveError(f"Could not write pool to {file_path}: {e}") from e

    logger.info(
        f"Pool saved to {file_path}: {len(pool.units)} translations "
        f"({pool.metadata.total_contexts} contexts)"
    )


def load_pool(file_path: str) -> Pool:
    """
    Reads a pool document.

    Raises:
        PoolLoadError: the file is missing, unreadable, not JSON or not a pool document.
    """
    if not os.path.exists(file_path):
        raise PoolLoadError(f"Pool file not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Loading pool failed: {e}")
        raise PoolLoadError(f"Could not read pool from {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise PoolLoadError(f"Pool file {file_path} does not contain a JSON object")

    pool = pool_from_dict(data)
    logger.info(
        f"Pool loaded: {len(pool.units)} translations ({pool.metadata.total_contexts} contexts)"
    )
    return pool
