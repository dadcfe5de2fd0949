"""
Workspace Manager - state, persistence, and history for one open workspace.

The core package is stateless: every operation takes a workspace and
returns a new one. This module is the caller that owns the state:
- Single workspace state (one workspace open at a time)
- Linear undo/redo history using snapshots
- File persistence as DSL (.dsl/.txt) or JSON (.json)
- Position memory across DSL re-imports
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Optional

from c4core import operations
from c4core.config import DSL_EXTENSION, DSL_FILE_EXTENSIONS, JSON_EXTENSION
from c4core.errors import WorkspaceFileError
from c4core.generator import generate_dsl
from c4core.layout import grid_layout
from c4core.models import Element, ElementKind, Position, Relationship, View, ViewKind, Workspace
from c4core.parser import parse_dsl_with_diagnostics
from c4core.validation import collect_issues, validation_summary

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = int(os.environ.get("C4DSL_MAX_HISTORY", "100"))


def dsl_filename(workspace_name: str) -> str:
    """File name for a workspace's DSL export, e.g. "Online Shop" -> "online_shop.dsl"."""
    sanitized = re.sub(r"[^a-z0-9]+", "_", workspace_name.lower()).strip("_")
    return (sanitized or "workspace") + DSL_EXTENSION


def is_dsl_file(path: str | Path) -> bool:
    return Path(path).suffix.lower() in DSL_FILE_EXTENSIONS


def position_key(element: Element) -> str:
    """Key used to carry a position across re-parses, which mint new ids."""
    return f"{element.name}|{element.kind.value}"


class WorkspaceManager:
    """
    Manages a single workspace's state, history, and persistence.

    The history system works via snapshots:
    - Each mutation stores a full snapshot of the previous state
    - Undo restores the previous snapshot
    - Redo re-applies a snapshot from the future stack
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        self._workspace: Optional[Workspace] = None
        self._file_path: Optional[Path] = None
        self._history: list[dict] = []  # Past states (snapshots)
        self._future: list[dict] = []   # Future states (for redo)
        self._max_history = max_history
        self._dirty = False  # True if unsaved changes exist
        self._on_change_callbacks: list[Callable] = []
        self.previous_positions: dict[str, Position] = {}  # "name|kind" -> position
        self.last_warnings: list[str] = []  # From the most recent DSL parse

    # --- Properties ---

    @property
    def workspace(self) -> Optional[Workspace]:
        return self._workspace

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_path

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def can_undo(self) -> bool:
        return len(self._history) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._future) > 0

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for workspace changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        for callback in self._on_change_callbacks:
            callback()

    # --- History Management ---

    def _save_to_history(self):
        """Save current state to history before a mutation."""
        if self._workspace is None:
            return

        # A new action invalidates the redo stack
        self._future.clear()
        self._history.append(self._workspace.to_json_dict())

        if len(self._history) > self._max_history:
            self._history.pop(0)

    def _require_workspace(self) -> Workspace:
        if self._workspace is None:
            raise WorkspaceFileError("No workspace open")
        return self._workspace

    def _commit(self, workspace: Workspace) -> Workspace:
        """Replace the current workspace after a successful mutation."""
        self._save_to_history()
        self._workspace = workspace
        self._dirty = True
        self._notify_change()
        return workspace

    def _replace(self, workspace: Workspace, file_path: Optional[Path] = None) -> Workspace:
        """Install a fresh workspace, dropping history and remembered positions."""
        self._workspace = workspace
        self._file_path = file_path
        self._history.clear()
        self._future.clear()
        self.previous_positions.clear()
        self._dirty = False
        self._notify_change()
        return workspace

    # --- File Operations ---

    def new_workspace(self, name: Optional[str] = None) -> Workspace:
        """Create a new empty workspace."""
        if name:
            return self._replace(operations.new_workspace(name=name))
        return self._replace(operations.new_workspace())

    def open_workspace(self, file_path: str | Path) -> Workspace:
        """
        Open a workspace from a DSL or JSON file.

        Raises:
            WorkspaceFileError: missing file, unsupported extension, bad JSON
            DSLError: structurally invalid DSL
        """
        path = Path(file_path)
        if not path.exists():
            raise WorkspaceFileError(f"Workspace file not found: {path}")

        content = path.read_text(encoding="utf-8")
        if is_dsl_file(path):
            result = parse_dsl_with_diagnostics(content)
            self.last_warnings = result.warnings
            workspace = result.workspace
        elif path.suffix.lower() == JSON_EXTENSION:
            try:
                workspace = Workspace.from_json_dict(json.loads(content))
            except ValueError as e:
                raise WorkspaceFileError(f"Invalid workspace JSON in {path}: {e}")
            self.last_warnings = []
        else:
            raise WorkspaceFileError(f"Unsupported file type: {path.suffix or path.name}")

        logger.info("Opened %s (%d elements)", path, len(workspace.elements))
        return self._replace(operations.load_workspace(workspace), path)

    def save_workspace(self, file_path: Optional[str | Path] = None) -> Path:
        """
        Save the workspace as DSL or JSON, chosen by the file extension.

        If file_path is provided, save to that path (Save As).
        Otherwise, save to the current file_path.
        """
        workspace = self._require_workspace()

        if file_path:
            path = Path(file_path)
        elif self._file_path:
            path = self._file_path
        else:
            raise WorkspaceFileError("No file path specified and no current file path")

        if is_dsl_file(path):
            content = generate_dsl(workspace)
        elif path.suffix.lower() == JSON_EXTENSION:
            content = json.dumps(workspace.to_json_dict(), indent=2)
        else:
            raise WorkspaceFileError(f"Unsupported file type: {path.suffix or path.name}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

        self._file_path = path
        self._dirty = False
        logger.info("Saved %s", path)
        return path

    # --- DSL ---

    def remember_positions(self) -> dict[str, Position]:
        """Record current element positions under their `name|kind` key."""
        if self._workspace is not None:
            for element in self._workspace.elements:
                self.previous_positions[position_key(element)] = element.position.model_copy()
        return self.previous_positions

    def import_dsl(self, dsl: str) -> Workspace:
        """
        Replace the workspace contents with parsed DSL text.

        Parsing mints fresh ids, so elements whose name and kind match an
        element seen before keep that element's on-canvas position.
        """
        result = parse_dsl_with_diagnostics(dsl)
        self.last_warnings = result.warnings
        self.remember_positions()

        elements = []
        for element in result.workspace.elements:
            saved = self.previous_positions.get(position_key(element))
            if saved is not None:
                element = element.model_copy(update={"position": saved.model_copy()})
            elements.append(element)

        workspace = result.workspace.model_copy(update={"elements": elements})
        logger.info(
            "Imported DSL: %d elements, %d relationships, %d views",
            len(workspace.elements), len(workspace.relationships), len(workspace.views),
        )
        return self._commit(workspace)

    def export_dsl(self) -> str:
        return generate_dsl(self._require_workspace())

    # --- Undo/Redo ---

    def undo(self) -> Optional[Workspace]:
        """Undo the last action."""
        if not self.can_undo or self._workspace is None:
            return None

        self._future.append(self._workspace.to_json_dict())
        self._workspace = Workspace.from_json_dict(self._history.pop())
        self._dirty = True
        self._notify_change()
        return self._workspace

    def redo(self) -> Optional[Workspace]:
        """Redo the last undone action."""
        if not self.can_redo or self._workspace is None:
            return None

        self._history.append(self._workspace.to_json_dict())
        self._workspace = Workspace.from_json_dict(self._future.pop())
        self._dirty = True
        self._notify_change()
        return self._workspace

    # --- Workspace Info ---

    def update_workspace_info(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Workspace:
        workspace = self._require_workspace()
        return self._commit(operations.set_workspace_info(workspace, name, description))

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        if self._workspace is None:
            return {
                "workspace": None,
                "file_path": None,
                "is_dirty": False,
                "can_undo": False,
                "can_redo": False
            }

        return {
            "workspace": self._workspace.to_json_dict(),
            "file_path": str(self._file_path) if self._file_path else None,
            "is_dirty": self._dirty,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo
        }

    # --- Elements ---

    def add_element(self, kind: ElementKind, **fields: Any) -> Element:
        workspace, element = operations.add_element(self._require_workspace(), kind, **fields)
        self._commit(workspace)
        return element

    def update_element(self, element_id: str, **updates: Any) -> Element:
        workspace = operations.update_element(self._require_workspace(), element_id, **updates)
        self._commit(workspace)
        return workspace.get_element(element_id)

    def move_element(self, element_id: str, x: float, y: float) -> Element:
        workspace = operations.move_element(self._require_workspace(), element_id, x, y)
        self._commit(workspace)
        return workspace.get_element(element_id)

    def rename_element(self, element_id: str, new_name: str) -> Element:
        """Rename and re-key an element. Returns the element under its new id."""
        before = self._require_workspace()
        workspace = operations.rename_element(before, element_id, new_name)
        self._commit(workspace)
        index = next(i for i, e in enumerate(before.elements) if e.id == element_id)
        return workspace.elements[index]

    def delete_element(self, element_id: str) -> None:
        self._commit(operations.delete_element(self._require_workspace(), element_id))

    def get_element(self, element_id: str) -> Optional[Element]:
        if self._workspace is None:
            return None
        return self._workspace.get_element(element_id)

    # --- Relationships ---

    def add_relationship(self, source_id: str, target_id: str, **fields: Any) -> Relationship:
        workspace, relationship = operations.add_relationship(
            self._require_workspace(), source_id, target_id, **fields
        )
        self._commit(workspace)
        return relationship

    def update_relationship(self, relationship_id: str, **updates: Any) -> Relationship:
        workspace = operations.update_relationship(
            self._require_workspace(), relationship_id, **updates
        )
        self._commit(workspace)
        return workspace.get_relationship(relationship_id)

    def delete_relationship(self, relationship_id: str) -> None:
        self._commit(operations.delete_relationship(self._require_workspace(), relationship_id))

    # --- Views ---

    def add_view(self, kind: ViewKind, key: str, **fields: Any) -> View:
        workspace, view = operations.add_view(self._require_workspace(), kind, key, **fields)
        self._commit(workspace)
        return view

    def update_view(self, view_id: str, **updates: Any) -> View:
        workspace = operations.update_view(self._require_workspace(), view_id, **updates)
        self._commit(workspace)
        return workspace.get_view(view_id)

    def rename_view(self, view_id: str, new_name: str) -> View:
        before = self._require_workspace()
        workspace = operations.rename_view(before, view_id, new_name)
        self._commit(workspace)
        index = next(i for i, v in enumerate(before.views) if v.id == view_id)
        return workspace.views[index]

    def delete_view(self, view_id: str) -> None:
        self._commit(operations.delete_view(self._require_workspace(), view_id))

    # --- Layout & Analysis ---

    def auto_layout(self) -> bool:
        """Arrange every element on the fallback grid."""
        workspace = self._require_workspace()
        if not workspace.elements:
            return False

        elements = [e.model_copy(deep=True) for e in workspace.elements]
        grid_layout(elements)
        self._commit(workspace.model_copy(update={"elements": elements}))
        return True

    def validate(self) -> dict:
        issues = collect_issues(self._require_workspace())
        return {
            "issues": [issue.to_dict() for issue in issues],
            "summary": validation_summary(issues),
        }


# Global instance for the application
workspace_manager = WorkspaceManager()
