"""SQLite-backed persistence for models, files, assets, and annotations."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from .errors import CatalogError, RecordNotFoundError
from .models import (
    AssetRecord,
    AssetType,
    CatalogStats,
    DesignerRecord,
    DesignerSummary,
    FileEntry,
    LooseFileRecord,
    ModelFields,
    ModelFileRecord,
    ModelMetadataRecord,
    ModelRecord,
    PrintedEntry,
    PrintRating,
    QueueEntry,
)
from .schema import apply_schema

LOGGER = logging.getLogger(__name__)


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class CatalogRepository:
    """Own the SQLite connection and expose catalog reads and writes.

    A single connection is shared across threads and every access is serialized
    through a re-entrant lock. Writes made inside :meth:`transaction` are committed
    together when the outermost block exits.
    """

    def __init__(self, path: Path | str) -> None:
        """Open (creating if needed) the catalog database.

        Args:
            path: Database file, or ``":memory:"`` for an in-memory catalog.

        Raises:
            CatalogError: If the database cannot be opened.
        """
        self._path = str(path) if str(path) == ":memory:" else str(Path(path).expanduser())
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise CatalogError(f"Unable to open catalog at {self._path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        apply_schema(self._conn)

    @property
    def path(self) -> str:
        """Return the database location."""
        return self._path

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside a (possibly nested) transaction."""
        with self._lock:
            self._depth += 1
            try:
                yield self._conn
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._conn.rollback()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self._conn.commit()

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        row = self._fetchone(sql, params)
        return row[0] if row is not None else None

    # ------------------------------------------------------------------ #
    # Models                                                             #
    # ------------------------------------------------------------------ #

    def get_model(self, model_id: int) -> Optional[ModelRecord]:
        row = self._fetchone("SELECT * FROM models WHERE id = ?", (model_id,))
        return ModelRecord.model_validate(dict(row)) if row else None

    def require_model(self, model_id: int) -> ModelRecord:
        """Return the model or raise :class:`RecordNotFoundError`."""
        model = self.get_model(model_id)
        if model is None:
            raise RecordNotFoundError(f"Model not found: {model_id}")
        return model

    def get_model_by_path(self, filepath: str) -> Optional[ModelRecord]:
        row = self._fetchone("SELECT * FROM models WHERE filepath = ?", (filepath,))
        return ModelRecord.model_validate(dict(row)) if row else None

    def list_models(
        self,
        *,
        include_deleted: bool = False,
        category: Optional[str] = None,
    ) -> list[ModelRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if not include_deleted:
            clauses.append("deleted_at IS NULL")
        if category is not None:
            clauses.append("category = ?")
            params.append(category)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._fetchall(f"SELECT * FROM models {where} ORDER BY filepath", params)
        return [ModelRecord.model_validate(dict(row)) for row in rows]

    def insert_model(self, fields: ModelFields) -> int:
        now = utc_now()
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO models (
                    filename, filepath, category, is_paid, is_original, file_count,
                    date_added, date_created, designer_id, created_at, updated_at, last_scanned
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    fields.filename,
                    fields.filepath,
                    fields.category,
                    int(fields.is_paid),
                    int(fields.is_original),
                    fields.file_count,
                    fields.date_added,
                    fields.date_created,
                    fields.designer_id,
                    now,
                    now,
                    now,
                ),
            )
            return int(cursor.lastrowid)

    def update_model(self, model_id: int, fields: ModelFields) -> None:
        """Rewrite scanner-owned columns in place and clear any soft delete."""
        now = utc_now()
        with self.transaction() as conn:
            conn.execute(
                """
                UPDATE models SET
                    filename = ?, category = ?, is_paid = ?, is_original = ?, file_count = ?,
                    date_added = ?, date_created = ?,
                    designer_id = COALESCE(?, designer_id),
                    updated_at = ?, last_scanned = ?, deleted_at = NULL
                WHERE id = ?
                """,
                (
                    fields.filename,
                    fields.category,
                    int(fields.is_paid),
                    int(fields.is_original),
                    fields.file_count,
                    fields.date_added,
                    fields.date_created,
                    fields.designer_id,
                    now,
                    now,
                    model_id,
                ),
            )

    def soft_delete_model(self, model_id: int) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE models SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (utc_now(), model_id),
            )

    def delete_model(self, model_id: int) -> None:
        """Hard-delete a model; child and annotation rows cascade."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM models WHERE id = ?", (model_id,))

    def set_model_notes(self, model_id: int, notes: Optional[str]) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE models SET notes = ?, updated_at = ? WHERE id = ?",
                (notes, utc_now(), model_id),
            )

    def categories(self) -> list[str]:
        """Return distinct categories of live models, sorted."""
        rows = self._fetchall(
            """
            SELECT DISTINCT category FROM models
            WHERE deleted_at IS NULL AND category IS NOT NULL
            ORDER BY category
            """
        )
        return [row["category"] for row in rows]

    # ------------------------------------------------------------------ #
    # Model files                                                        #
    # ------------------------------------------------------------------ #

    def list_model_files(self, model_id: int) -> list[ModelFileRecord]:
        rows = self._fetchall(
            "SELECT * FROM model_files WHERE model_id = ? ORDER BY filepath", (model_id,)
        )
        return [ModelFileRecord.model_validate(dict(row)) for row in rows]

    def reconcile_model_files(self, model_id: int, entries: Iterable[FileEntry]) -> int:
        """Make the model's file rows match ``entries`` exactly, keyed by filepath.

        Returns:
            int: Number of entries written.
        """
        entries = list(entries)
        keep = {entry.filepath for entry in entries}
        with self.transaction() as conn:
            existing = conn.execute(
                "SELECT id, filepath FROM model_files WHERE model_id = ?", (model_id,)
            ).fetchall()
            for row in existing:
                if row["filepath"] not in keep:
                    conn.execute("DELETE FROM model_files WHERE id = ?", (row["id"],))
            for entry in entries:
                conn.execute(
                    """
                    INSERT INTO model_files (model_id, filename, filepath, file_size, file_type)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(filepath) DO UPDATE SET
                        model_id = excluded.model_id,
                        filename = excluded.filename,
                        file_size = excluded.file_size,
                        file_type = excluded.file_type
                    """,
                    (model_id, entry.filename, entry.filepath, entry.file_size, entry.file_type),
                )
        return len(entries)

    # ------------------------------------------------------------------ #
    # Assets                                                             #
    # ------------------------------------------------------------------ #

    def get_asset(self, asset_id: int) -> Optional[AssetRecord]:
        row = self._fetchone("SELECT * FROM model_assets WHERE id = ?", (asset_id,))
        return AssetRecord.model_validate(dict(row)) if row else None

    def list_assets(
        self,
        model_id: int,
        *,
        asset_type: Optional[AssetType] = None,
        include_hidden: bool = True,
    ) -> list[AssetRecord]:
        sql = "SELECT * FROM model_assets WHERE model_id = ?"
        params: list[Any] = [model_id]
        if asset_type is not None:
            sql += " AND asset_type = ?"
            params.append(asset_type)
        if not include_hidden:
            sql += " AND is_hidden = 0"
        rows = self._fetchall(sql + " ORDER BY id", params)
        return [AssetRecord.model_validate(dict(row)) for row in rows]

    def reconcile_assets(
        self, model_id: int, assets: Iterable[tuple[str, AssetType]]
    ) -> int:
        """Sync asset rows with ``assets`` while preserving primary/hidden flags.

        Rows whose file is no longer present are removed; new files are inserted
        as non-primary, visible assets.

        Returns:
            int: Number of newly inserted assets.
        """
        wanted = list(assets)
        keep = {filepath for filepath, _ in wanted}
        inserted = 0
        with self.transaction() as conn:
            existing = {
                row["filepath"]: row["id"]
                for row in conn.execute(
                    "SELECT id, filepath FROM model_assets WHERE model_id = ?", (model_id,)
                ).fetchall()
            }
            for filepath, asset_id in existing.items():
                if filepath not in keep:
                    conn.execute("DELETE FROM model_assets WHERE id = ?", (asset_id,))
            for filepath, asset_type in wanted:
                if filepath in existing:
                    continue
                conn.execute(
                    """
                    INSERT INTO model_assets (model_id, filepath, asset_type, is_primary, is_hidden)
                    VALUES (?, ?, ?, 0, 0)
                    """,
                    (model_id, filepath, asset_type),
                )
                inserted += 1
        return inserted

    def add_asset(
        self,
        model_id: int,
        filepath: str,
        asset_type: AssetType,
        *,
        is_primary: bool = False,
    ) -> int:
        with self.transaction() as conn:
            if is_primary:
                conn.execute(
                    "UPDATE model_assets SET is_primary = 0 WHERE model_id = ?", (model_id,)
                )
            cursor = conn.execute(
                """
                INSERT INTO model_assets (model_id, filepath, asset_type, is_primary, is_hidden)
                VALUES (?, ?, ?, ?, 0)
                ON CONFLICT(model_id, filepath) DO UPDATE SET is_primary = excluded.is_primary
                """,
                (model_id, filepath, asset_type, int(is_primary)),
            )
            return int(cursor.lastrowid)

    def set_primary_asset(self, model_id: int, asset_id: int) -> None:
        with self.transaction() as conn:
            conn.execute("UPDATE model_assets SET is_primary = 0 WHERE model_id = ?", (model_id,))
            conn.execute(
                """
                UPDATE model_assets SET is_primary = 1, is_hidden = 0
                WHERE id = ? AND model_id = ?
                """,
                (asset_id, model_id),
            )

    def set_asset_hidden(self, asset_id: int, hidden: bool) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE model_assets SET is_hidden = ? WHERE id = ?", (int(hidden), asset_id)
            )

    def clear_primary(self, asset_id: int) -> None:
        with self.transaction() as conn:
            conn.execute("UPDATE model_assets SET is_primary = 0 WHERE id = ?", (asset_id,))

    def ensure_primary_image(self, model_id: int) -> Optional[int]:
        """Guarantee a visible primary image when the model has one to offer.

        An existing visible primary is kept. Otherwise any stale primary flag is
        cleared and the first visible ``.gif`` (else the first visible image) is
        promoted.

        Returns:
            Optional[int]: The primary asset id, or ``None`` when no visible image exists.
        """
        with self.transaction() as conn:
            images = conn.execute(
                """
                SELECT id, filepath, is_primary, is_hidden FROM model_assets
                WHERE model_id = ? AND asset_type = 'image'
                ORDER BY id
                """,
                (model_id,),
            ).fetchall()
            visible = [row for row in images if not row["is_hidden"]]
            current = [row for row in visible if row["is_primary"]]
            if current:
                return int(current[0]["id"])
            conn.execute("UPDATE model_assets SET is_primary = 0 WHERE model_id = ?", (model_id,))
            if not visible:
                return None
            chosen = next(
                (row for row in visible if row["filepath"].lower().endswith(".gif")), visible[0]
            )
            conn.execute("UPDATE model_assets SET is_primary = 1 WHERE id = ?", (chosen["id"],))
            return int(chosen["id"])

    def has_image(self, model_id: int) -> bool:
        count = self._scalar(
            "SELECT COUNT(*) FROM model_assets WHERE model_id = ? AND asset_type = 'image'",
            (model_id,),
        )
        return bool(count)

    def models_with_multiple_visible_images(self) -> list[int]:
        rows = self._fetchall(
            """
            SELECT a.model_id FROM model_assets a
            JOIN models m ON m.id = a.model_id AND m.deleted_at IS NULL
            WHERE a.asset_type = 'image' AND a.is_hidden = 0
            GROUP BY a.model_id HAVING COUNT(*) > 1
            """
        )
        return [int(row["model_id"]) for row in rows]

    # ------------------------------------------------------------------ #
    # Loose files                                                        #
    # ------------------------------------------------------------------ #

    def clear_loose_files(self) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM loose_files")

    def add_loose_file(self, entry: FileEntry, category: str) -> bool:
        """Record a loose file unless its path is already present.

        Returns:
            bool: True when a new row was inserted.
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO loose_files
                    (filename, filepath, file_size, file_type, category, discovered_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.filename,
                    entry.filepath,
                    entry.file_size,
                    entry.file_type,
                    category,
                    utc_now(),
                ),
            )
            return cursor.rowcount > 0

    def get_loose_file(self, loose_id: int) -> Optional[LooseFileRecord]:
        row = self._fetchone("SELECT * FROM loose_files WHERE id = ?", (loose_id,))
        return LooseFileRecord.model_validate(dict(row)) if row else None

    def list_loose_files(self) -> list[LooseFileRecord]:
        rows = self._fetchall("SELECT * FROM loose_files ORDER BY filepath")
        return [LooseFileRecord.model_validate(dict(row)) for row in rows]

    def delete_loose_files(self, loose_ids: Iterable[int]) -> None:
        with self.transaction() as conn:
            conn.executemany(
                "DELETE FROM loose_files WHERE id = ?", [(loose_id,) for loose_id in loose_ids]
            )

    # ------------------------------------------------------------------ #
    # Designers, tags, metadata                                          #
    # ------------------------------------------------------------------ #

    def get_or_create_designer(self, name: str, profile_url: Optional[str] = None) -> int:
        """Return the id of the designer called ``name``, creating it when missing.

        Names match case-insensitively. A known designer without a profile URL
        takes ``profile_url``.
        """
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT id FROM designers WHERE LOWER(name) = LOWER(?)", (name,)
            ).fetchone()
            if row is not None:
                if profile_url:
                    conn.execute(
                        "UPDATE designers SET profile_url = COALESCE(profile_url, ?) WHERE id = ?",
                        (profile_url, row["id"]),
                    )
                return int(row["id"])
            cursor = conn.execute(
                "INSERT INTO designers (name, profile_url, created_at) VALUES (?, ?, ?)",
                (name, profile_url, utc_now()),
            )
            return int(cursor.lastrowid)

    def designer_name(self, designer_id: int) -> Optional[str]:
        return self._scalar("SELECT name FROM designers WHERE id = ?", (designer_id,))

    def get_designer(self, designer_id: int) -> Optional[DesignerRecord]:
        row = self._fetchone("SELECT * FROM designers WHERE id = ?", (designer_id,))
        return DesignerRecord.model_validate(dict(row)) if row else None

    def find_designer(self, name: str) -> Optional[DesignerRecord]:
        row = self._fetchone("SELECT * FROM designers WHERE LOWER(name) = LOWER(?)", (name,))
        return DesignerRecord.model_validate(dict(row)) if row else None

    def require_designer(self, designer_id: int) -> DesignerRecord:
        """Return the designer or raise :class:`RecordNotFoundError`."""
        designer = self.get_designer(designer_id)
        if designer is None:
            raise RecordNotFoundError(f"Designer not found: {designer_id}")
        return designer

    def list_designers(self) -> list[DesignerSummary]:
        """Return every designer by name with counts over their live models."""
        rows = self._fetchall(
            """
            SELECT d.*, COUNT(m.id) AS model_count, MAX(m.date_added) AS latest_model_date
            FROM designers d
            LEFT JOIN models m ON m.designer_id = d.id AND m.deleted_at IS NULL
            GROUP BY d.id
            ORDER BY d.name COLLATE NOCASE
            """
        )
        return [DesignerSummary.model_validate(dict(row)) for row in rows]

    def list_designer_models(self, designer_id: int) -> list[ModelRecord]:
        rows = self._fetchall(
            """
            SELECT * FROM models
            WHERE designer_id = ? AND deleted_at IS NULL
            ORDER BY date_added IS NULL, date_added DESC, filename
            """,
            (designer_id,),
        )
        return [ModelRecord.model_validate(dict(row)) for row in rows]

    def update_designer(
        self,
        designer_id: int,
        *,
        name: Optional[str] = None,
        profile_url: Optional[str] = None,
    ) -> None:
        """Rename a designer or change its profile URL.

        ``None`` leaves a column untouched; an empty ``profile_url`` clears it.
        """
        assignments: list[str] = []
        params: list[Any] = []
        if name is not None:
            assignments.append("name = ?")
            params.append(name)
        if profile_url is not None:
            assignments.append("profile_url = ?")
            params.append(profile_url or None)
        if not assignments:
            return
        with self.transaction() as conn:
            conn.execute(
                f"UPDATE designers SET {', '.join(assignments)} WHERE id = ?",
                [*params, designer_id],
            )

    def delete_designer(self, designer_id: int) -> int:
        """Delete a designer, unlinking (never deleting) its models.

        Returns:
            int: Number of models unlinked.
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE models SET designer_id = NULL WHERE designer_id = ?", (designer_id,)
            )
            conn.execute("DELETE FROM designers WHERE id = ?", (designer_id,))
            return cursor.rowcount

    def link_model_designer(self, model_id: int, designer_id: Optional[int]) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE models SET designer_id = ? WHERE id = ?", (designer_id, model_id)
            )

    def unlinked_metadata_designers(self) -> list[tuple[int, str, Optional[str]]]:
        """Return ``(model_id, designer, designer_url)`` for unlinked models whose PDF names one."""
        rows = self._fetchall(
            """
            SELECT m.id, mm.designer, mm.designer_url
            FROM model_metadata mm
            JOIN models m ON m.id = mm.model_id
            WHERE mm.designer IS NOT NULL AND mm.designer != ''
              AND m.deleted_at IS NULL AND m.designer_id IS NULL
            ORDER BY m.id
            """
        )
        return [(int(row["id"]), row["designer"], row["designer_url"]) for row in rows]

    def add_model_tag(self, model_id: int, tag: str) -> None:
        name = tag.strip().lower()
        if not name:
            return
        with self.transaction() as conn:
            conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (name,))
            conn.execute(
                """
                INSERT OR IGNORE INTO model_tags (model_id, tag_id)
                SELECT ?, id FROM tags WHERE name = ?
                """,
                (model_id, name),
            )

    def remove_model_tag(self, model_id: int, tag: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                DELETE FROM model_tags
                WHERE model_id = ? AND tag_id IN (SELECT id FROM tags WHERE name = ?)
                """,
                (model_id, tag.strip().lower()),
            )

    def list_model_tags(self, model_id: int) -> list[str]:
        rows = self._fetchall(
            """
            SELECT t.name FROM model_tags mt JOIN tags t ON t.id = mt.tag_id
            WHERE mt.model_id = ? ORDER BY t.name
            """,
            (model_id,),
        )
        return [row["name"] for row in rows]

    def models_needing_metadata(self) -> list[tuple[int, str]]:
        """Return ``(model_id, pdf_path)`` for live models with a PDF and no metadata row."""
        rows = self._fetchall(
            """
            SELECT m.id AS model_id, MIN(a.filepath) AS pdf_path
            FROM models m
            JOIN model_assets a ON a.model_id = m.id AND a.asset_type = 'pdf'
            LEFT JOIN model_metadata mm ON mm.model_id = m.id
            WHERE mm.model_id IS NULL AND m.deleted_at IS NULL
            GROUP BY m.id
            ORDER BY m.id
            """
        )
        return [(int(row["model_id"]), row["pdf_path"]) for row in rows]

    def save_metadata(self, model_id: int, values: Mapping[str, Optional[str]]) -> None:
        columns = (
            "source_platform",
            "source_url",
            "designer",
            "designer_url",
            "description",
            "license",
            "license_url",
        )
        with self.transaction() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO model_metadata (model_id, {', '.join(columns)}, extracted_at)
                VALUES (?, {', '.join('?' for _ in columns)}, ?)
                """,
                (model_id, *(values.get(column) for column in columns), utc_now()),
            )

    def get_metadata(self, model_id: int) -> Optional[ModelMetadataRecord]:
        row = self._fetchone("SELECT * FROM model_metadata WHERE model_id = ?", (model_id,))
        return ModelMetadataRecord.model_validate(dict(row)) if row else None

    # ------------------------------------------------------------------ #
    # Annotations                                                        #
    # ------------------------------------------------------------------ #

    def add_favorite(self, model_id: int, notes: Optional[str] = None) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO favorites (model_id, added_at, notes) VALUES (?, ?, ?)",
                (model_id, utc_now(), notes),
            )
            return cursor.rowcount > 0

    def remove_favorite(self, model_id: int) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM favorites WHERE model_id = ?", (model_id,))
            return cursor.rowcount > 0

    def list_favorites(self) -> list[ModelRecord]:
        rows = self._fetchall(
            """
            SELECT m.* FROM favorites f JOIN models m ON m.id = f.model_id
            WHERE m.deleted_at IS NULL ORDER BY f.added_at DESC
            """
        )
        return [ModelRecord.model_validate(dict(row)) for row in rows]

    def is_favorite(self, model_id: int) -> bool:
        return self._scalar("SELECT 1 FROM favorites WHERE model_id = ?", (model_id,)) is not None

    def enqueue(
        self, model_id: int, *, priority: int = 0, notes: Optional[str] = None
    ) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO print_queue (model_id, added_at, priority, notes)
                VALUES (?, ?, ?, ?)
                """,
                (model_id, utc_now(), priority, notes),
            )
            return cursor.rowcount > 0

    def dequeue(self, model_id: int) -> bool:
        with self.transaction() as conn:
            return (
                conn.execute("DELETE FROM print_queue WHERE model_id = ?", (model_id,)).rowcount > 0
            )

    def is_queued(self, model_id: int) -> bool:
        return self._scalar("SELECT 1 FROM print_queue WHERE model_id = ?", (model_id,)) is not None

    def list_queue(self) -> list[QueueEntry]:
        rows = self._fetchall(
            """
            SELECT q.model_id, m.filename, q.priority, q.added_at, q.notes
            FROM print_queue q JOIN models m ON m.id = q.model_id
            WHERE m.deleted_at IS NULL
            ORDER BY q.priority DESC, q.added_at
            """
        )
        return [QueueEntry.model_validate(dict(row)) for row in rows]

    def add_printed(
        self, model_id: int, rating: Optional[PrintRating], notes: Optional[str] = None
    ) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO printed_models (model_id, printed_at, rating, notes)
                VALUES (?, ?, ?, ?)
                """,
                (model_id, utc_now(), rating, notes),
            )
            return int(cursor.lastrowid)

    def has_printed(self, model_id: int) -> bool:
        return (
            self._scalar("SELECT 1 FROM printed_models WHERE model_id = ? LIMIT 1", (model_id,))
            is not None
        )

    def latest_rating(self, model_id: int) -> Optional[PrintRating]:
        return self._scalar(
            """
            SELECT rating FROM printed_models WHERE model_id = ?
            ORDER BY printed_at DESC, id DESC LIMIT 1
            """,
            (model_id,),
        )

    def remove_printed(self, model_id: int) -> bool:
        """Delete every print record of a model; True when any existed."""
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM printed_models WHERE model_id = ?", (model_id,))
            return cursor.rowcount > 0

    def list_printed(self) -> list[PrintedEntry]:
        rows = self._fetchall(
            """
            SELECT p.id, p.model_id, m.filename, p.rating, p.printed_at, p.notes
            FROM printed_models p JOIN models m ON m.id = p.model_id
            ORDER BY p.printed_at DESC
            """
        )
        return [PrintedEntry.model_validate(dict(row)) for row in rows]

    # ------------------------------------------------------------------ #
    # Categorization support                                             #
    # ------------------------------------------------------------------ #

    def record_hints(self, tokens: Iterable[str], category: str) -> None:
        with self.transaction() as conn:
            conn.executemany(
                """
                INSERT INTO categorization_hints (token, category, count) VALUES (?, ?, 1)
                ON CONFLICT(token, category) DO UPDATE SET count = count + 1
                """,
                [(token, category) for token in dict.fromkeys(tokens)],
            )

    def hint_counts(self, tokens: Iterable[str]) -> dict[str, int]:
        """Return summed hint counts per category for the given tokens."""
        unique = list(dict.fromkeys(tokens))
        if not unique:
            return {}
        placeholders = ", ".join("?" for _ in unique)
        rows = self._fetchall(
            f"""
            SELECT category, SUM(count) AS total FROM categorization_hints
            WHERE token IN ({placeholders})
            GROUP BY category
            """,
            unique,
        )
        return {row["category"]: int(row["total"]) for row in rows}

    def set_category_description(self, category: str, description: Optional[str]) -> None:
        with self.transaction() as conn:
            if description:
                conn.execute(
                    """
                    INSERT INTO category_descriptions (category, description) VALUES (?, ?)
                    ON CONFLICT(category) DO UPDATE SET description = excluded.description
                    """,
                    (category, description),
                )
            else:
                conn.execute("DELETE FROM category_descriptions WHERE category = ?", (category,))

    def category_descriptions(self) -> dict[str, str]:
        rows = self._fetchall("SELECT category, description FROM category_descriptions")
        return {row["category"]: row["description"] for row in rows}

    # ------------------------------------------------------------------ #
    # Settings table                                                     #
    # ------------------------------------------------------------------ #

    def get_setting(self, key: str) -> Optional[str]:
        return self._scalar("SELECT value FROM config WHERE key = ?", (key,))

    def set_setting(self, key: str, value: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO config (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE
                SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, utc_now()),
            )

    def delete_setting(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM config WHERE key = ?", (key,))

    def all_settings(self) -> dict[str, str]:
        return {row["key"]: row["value"] for row in self._fetchall("SELECT key, value FROM config")}

    # ------------------------------------------------------------------ #
    # Stats                                                              #
    # ------------------------------------------------------------------ #

    def stats(self) -> CatalogStats:
        def count(sql: str) -> int:
            return int(self._scalar(sql) or 0)

        return CatalogStats(
            models=count("SELECT COUNT(*) FROM models WHERE deleted_at IS NULL"),
            deleted_models=count("SELECT COUNT(*) FROM models WHERE deleted_at IS NOT NULL"),
            model_files=count("SELECT COUNT(*) FROM model_files"),
            favorites=count("SELECT COUNT(*) FROM favorites"),
            printed=count("SELECT COUNT(DISTINCT model_id) FROM printed_models"),
            queued=count("SELECT COUNT(*) FROM print_queue"),
            loose_files=count("SELECT COUNT(*) FROM loose_files"),
            categories=self.categories(),
        )


__all__ = ["CatalogRepository", "utc_now"]
