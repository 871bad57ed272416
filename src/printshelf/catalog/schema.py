"""SQLite schema for the model catalog."""

from __future__ import annotations

import sqlite3

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS designers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    profile_url TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS models (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    filepath TEXT NOT NULL UNIQUE,
    category TEXT,
    is_paid INTEGER NOT NULL DEFAULT 0,
    is_original INTEGER NOT NULL DEFAULT 0,
    file_count INTEGER NOT NULL DEFAULT 0,
    date_added TEXT,
    date_created TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_scanned TEXT,
    deleted_at TEXT,
    designer_id INTEGER REFERENCES designers(id) ON DELETE SET NULL,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS model_files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_id INTEGER NOT NULL REFERENCES models(id) ON DELETE CASCADE,
    filename TEXT NOT NULL,
    filepath TEXT NOT NULL UNIQUE,
    file_size INTEGER,
    file_type TEXT
);

CREATE TABLE IF NOT EXISTS model_assets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_id INTEGER NOT NULL REFERENCES models(id) ON DELETE CASCADE,
    filepath TEXT NOT NULL,
    asset_type TEXT NOT NULL CHECK(asset_type IN ('image', 'pdf')),
    is_primary INTEGER NOT NULL DEFAULT 0,
    is_hidden INTEGER NOT NULL DEFAULT 0,
    UNIQUE(model_id, filepath)
);

CREATE TABLE IF NOT EXISTS loose_files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    filepath TEXT NOT NULL UNIQUE,
    file_size INTEGER,
    file_type TEXT,
    category TEXT,
    discovered_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS favorites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_id INTEGER NOT NULL UNIQUE REFERENCES models(id) ON DELETE CASCADE,
    added_at TEXT NOT NULL,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS printed_models (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_id INTEGER NOT NULL REFERENCES models(id) ON DELETE CASCADE,
    printed_at TEXT NOT NULL,
    rating TEXT CHECK(rating IN ('good', 'bad')),
    notes TEXT
);

CREATE TABLE IF NOT EXISTS print_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_id INTEGER NOT NULL UNIQUE REFERENCES models(id) ON DELETE CASCADE,
    added_at TEXT NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS model_tags (
    model_id INTEGER NOT NULL REFERENCES models(id) ON DELETE CASCADE,
    tag_id INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (model_id, tag_id)
);

CREATE TABLE IF NOT EXISTS model_metadata (
    model_id INTEGER PRIMARY KEY REFERENCES models(id) ON DELETE CASCADE,
    source_platform TEXT,
    source_url TEXT,
    designer TEXT,
    designer_url TEXT,
    description TEXT,
    license TEXT,
    license_url TEXT,
    extracted_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS categorization_hints (
    token TEXT NOT NULL,
    category TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (token, category)
);

CREATE TABLE IF NOT EXISTS category_descriptions (
    category TEXT PRIMARY KEY,
    description TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_models_category ON models(category);
CREATE INDEX IF NOT EXISTS idx_models_deleted_at ON models(deleted_at);
CREATE INDEX IF NOT EXISTS idx_model_files_model ON model_files(model_id);
CREATE INDEX IF NOT EXISTS idx_model_assets_model ON model_assets(model_id);
CREATE INDEX IF NOT EXISTS idx_queue_priority ON print_queue(priority DESC, added_at);
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create missing tables and indexes and record the schema version."""
    conn.execute("PRAGMA foreign_keys=ON")
    conn.executescript(SCHEMA)
    conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
    conn.commit()


__all__ = ["SCHEMA", "SCHEMA_VERSION", "apply_schema"]
