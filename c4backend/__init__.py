"""C4 DSL Tool backend - workspace state manager and FastAPI application."""

from .workspace_manager import WorkspaceManager, dsl_filename, is_dsl_file

__all__ = ["WorkspaceManager", "dsl_filename", "is_dsl_file"]
