"""Configuration constants for notes-vault."""

import os
from pathlib import Path

# Environment variable overriding the data directory.
DATA_DIR_ENV = "NOTES_VAULT_DIR"

# Directory with the vault database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/notes-vault").expanduser(),
    Path("~/.notes-vault").expanduser(),
    Path("~/.config/notes-vault").expanduser(),
]

# Used when none of DATA_DIRECTORIES exists yet.
DEFAULT_DATA_DIR: Path = DATA_DIRECTORIES[0]

DB_FILENAME = "vault.db"

# Default result counts for search and the "recent notes" view.
SEARCH_LIMIT = 20
RECENT_LIMIT = 10


def resolve_data_directory() -> Path:
    """Return the vault data directory.

    $NOTES_VAULT_DIR wins; otherwise the first existing entry of
    DATA_DIRECTORIES, falling back to DEFAULT_DATA_DIR.
    """
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DEFAULT_DATA_DIR


def db_path(data_dir: Path) -> Path:
    return data_dir / DB_FILENAME
