"""
In-memory directory state for the API process.

Nothing is persisted: entries and selection are lost on restart.
"""
from services.directory import DirectoryController

directory: DirectoryController = DirectoryController.from_settings()


def get_directory() -> DirectoryController:
    """FastAPI dependency returning the process-wide directory."""
    return directory
