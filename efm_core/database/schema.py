#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Database schema definitions for the collection catalog.
"""

# Main schema for the collection catalog
MAIN_SCHEMA = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS system (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS franchise (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS software_title (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    franchise_id INTEGER,
    FOREIGN KEY(franchise_id) REFERENCES franchise(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS release (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS release_system (
    release_id INTEGER NOT NULL,
    system_id INTEGER NOT NULL,
    PRIMARY KEY (release_id, system_id),
    FOREIGN KEY(release_id) REFERENCES release(id) ON DELETE CASCADE,
    FOREIGN KEY(system_id) REFERENCES system(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS release_software_title (
    release_id INTEGER NOT NULL,
    software_title_id INTEGER NOT NULL,
    PRIMARY KEY (release_id, software_title_id),
    FOREIGN KEY(release_id) REFERENCES release(id) ON DELETE CASCADE,
    FOREIGN KEY(software_title_id) REFERENCES software_title(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS file_set (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    file_name TEXT NOT NULL,
    file_type INTEGER NOT NULL,
    source TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS release_file_set (
    release_id INTEGER NOT NULL,
    file_set_id INTEGER NOT NULL,
    PRIMARY KEY (release_id, file_set_id),
    FOREIGN KEY(release_id) REFERENCES release(id) ON DELETE CASCADE,
    FOREIGN KEY(file_set_id) REFERENCES file_set(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS file_set_system (
    file_set_id INTEGER NOT NULL,
    system_id INTEGER NOT NULL,
    PRIMARY KEY (file_set_id, system_id),
    FOREIGN KEY(file_set_id) REFERENCES file_set(id) ON DELETE CASCADE,
    FOREIGN KEY(system_id) REFERENCES system(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS file_set_item_type (
    file_set_id INTEGER NOT NULL,
    item_type INTEGER NOT NULL,
    PRIMARY KEY (file_set_id, item_type),
    FOREIGN KEY(file_set_id) REFERENCES file_set(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS file_info (
    id INTEGER PRIMARY KEY,
    sha1_checksum BLOB NOT NULL,
    file_size INTEGER NOT NULL,
    archive_file_name TEXT NOT NULL,
    file_type INTEGER NOT NULL,
    UNIQUE(sha1_checksum, file_type)
);

CREATE TABLE IF NOT EXISTS file_info_system (
    file_info_id INTEGER NOT NULL,
    system_id INTEGER NOT NULL,
    PRIMARY KEY (file_info_id, system_id),
    FOREIGN KEY(file_info_id) REFERENCES file_info(id) ON DELETE CASCADE,
    FOREIGN KEY(system_id) REFERENCES system(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS file_set_file_info (
    file_set_id INTEGER NOT NULL,
    file_info_id INTEGER NOT NULL,
    file_name TEXT NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (file_set_id, file_info_id),
    FOREIGN KEY(file_set_id) REFERENCES file_set(id) ON DELETE CASCADE,
    FOREIGN KEY(file_info_id) REFERENCES file_info(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS release_item (
    id INTEGER PRIMARY KEY,
    release_id INTEGER NOT NULL,
    item_type INTEGER NOT NULL,
    notes TEXT,
    FOREIGN KEY(release_id) REFERENCES release(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS release_item_file_set (
    release_item_id INTEGER NOT NULL,
    file_set_id INTEGER NOT NULL,
    PRIMARY KEY (release_item_id, file_set_id),
    FOREIGN KEY(release_item_id) REFERENCES release_item(id) ON DELETE CASCADE,
    FOREIGN KEY(file_set_id) REFERENCES file_set(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS setting (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- No foreign key: rows must outlive the file_info they describe
CREATE TABLE IF NOT EXISTS file_sync_log (
    id INTEGER PRIMARY KEY,
    file_info_id INTEGER NOT NULL,
    sync_time TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    status INTEGER NOT NULL,
    message TEXT NOT NULL DEFAULT '',
    cloud_key TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS dat_file (
    id INTEGER PRIMARY KEY,
    dat_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    version TEXT NOT NULL,
    date TEXT,
    author TEXT NOT NULL DEFAULT '',
    homepage TEXT,
    url TEXT,
    subset TEXT,
    system_id INTEGER,
    imported_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY(system_id) REFERENCES system(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS dat_game (
    id INTEGER PRIMARY KEY,
    dat_file_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    game_id TEXT,
    description TEXT NOT NULL DEFAULT '',
    cloneof TEXT,
    cloneofid TEXT,
    FOREIGN KEY(dat_file_id) REFERENCES dat_file(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS dat_rom (
    id INTEGER PRIMARY KEY,
    dat_game_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    size INTEGER NOT NULL,
    crc TEXT NOT NULL DEFAULT '',
    md5 TEXT NOT NULL DEFAULT '',
    sha1 TEXT NOT NULL,
    sha256 TEXT,
    status TEXT,
    serial TEXT,
    header TEXT,
    FOREIGN KEY(dat_game_id) REFERENCES dat_game(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS file_set_dat_file_link (
    file_set_id INTEGER NOT NULL,
    dat_file_id INTEGER NOT NULL,
    PRIMARY KEY (file_set_id, dat_file_id),
    FOREIGN KEY(file_set_id) REFERENCES file_set(id) ON DELETE CASCADE,
    FOREIGN KEY(dat_file_id) REFERENCES dat_file(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_file_info_sha1 ON file_info(sha1_checksum);
CREATE INDEX IF NOT EXISTS idx_fsfi_file_info ON file_set_file_info(file_info_id);
CREATE INDEX IF NOT EXISTS idx_sync_log_file_info ON file_sync_log(file_info_id);
CREATE INDEX IF NOT EXISTS idx_dat_rom_sha1 ON dat_rom(sha1);
"""
