from pathlib import Path

from sqlalchemy.engine import make_url


def is_sqlite_url(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def is_sqlite_memory_url(url: str) -> bool:
    """Return True for in-memory SQLite URLs (``sqlite://`` or ``:memory:``)."""
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve a relative SQLite file path against ``project_root``.

    Both ``sqlite:///./dev.db`` and driver-qualified forms such as
    ``sqlite+pysqlite:///./dev.db`` are handled. Other backends, in-memory
    databases and absolute paths are returned unchanged.
    """
    if not is_sqlite_url(url) or is_sqlite_memory_url(url):
        return url
    parsed = make_url(url)
    if Path(parsed.database).is_absolute():
        return url
    resolved = (project_root / parsed.database).resolve()
    return parsed.set(database=str(resolved)).render_as_string(hide_password=False)
