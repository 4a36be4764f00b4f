# toolcrib/__init__.py
from __future__ import annotations


def initialize_app() -> None:
    """
    Initialize application environment:
    - Configure logging (file + console)
    - Use the system locale for text sort order
    - Create folders, database schema and settings file via bootstrap
    """
    from .audit import configure_logging
    from .bootstrap import ensure_app_initialized
    from .table import use_system_collation
    configure_logging()
    use_system_collation()
    ensure_app_initialized()
