"""`.env` loading for the CLI and app factory."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

ENV_FILE_VARIABLE = "TEAMTASK_ENV_FILE"
_loaded: set[Path] = set()


def load_env(*, override: bool = False) -> bool:
    """Load ``$TEAMTASK_ENV_FILE`` (if set) and the nearest ``.env`` file.

    Each file is read at most once per process unless *override* is set, in
    which case its values replace variables that are already defined.

    Returns:
        ``True`` if any file contributed variables.
    """

    candidates = []
    explicit = os.getenv(ENV_FILE_VARIABLE)
    if explicit:
        candidates.append(Path(explicit).expanduser())
    found = find_dotenv(usecwd=True)
    if found:
        candidates.append(Path(found))

    loaded_any = False
    for path in candidates:
        if not path.is_file():
            continue
        resolved = path.resolve()
        if resolved in _loaded and not override:
            continue
        _loaded.add(resolved)
        loaded_any = load_dotenv(resolved, override=override) or loaded_any
    return loaded_any
