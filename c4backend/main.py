"""
C4 DSL Tool Backend - FastAPI Application

It provides:
- REST API for workspace operations (CRUD for elements, relationships and
  views, file ops, undo/redo)
- Stateless DSL endpoints (parse, generate, validate)
- Stateful DSL import/export against the open workspace
- CORS configuration for local frontend development
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from c4core.errors import C4Error, NotFoundError
from c4core.generator import generate_dsl
from c4core.models import ElementKind, Position, RelationshipKind, ViewKind, Workspace
from c4core.parser import parse_dsl_with_diagnostics
from c4core.validation import validate_dsl

from .models import (
    CreateElementRequest,
    CreateRelationshipRequest,
    CreateViewRequest,
    DSLTextRequest,
    OpenRequest,
    RenameRequest,
    SaveRequest,
    UpdateElementRequest,
    UpdateRelationshipRequest,
    UpdateViewRequest,
    WorkspaceInfoRequest,
)
from .workspace_manager import WorkspaceManager, dsl_filename, workspace_manager

HOST = os.environ.get("C4DSL_HOST", "127.0.0.1")
PORT = int(os.environ.get("C4DSL_PORT", "8765"))


def _http_error(error: C4Error) -> HTTPException:
    """Map a domain error to an HTTP error: 404 for missing objects, else 400."""
    status = 404 if isinstance(error, NotFoundError) else 400
    return HTTPException(status_code=status, detail=error.message)


def create_app(manager: Optional[WorkspaceManager] = None) -> FastAPI:
    """Build the API around a workspace manager (the global one by default)."""
    manager = manager or workspace_manager

    app = FastAPI(
        title="C4 DSL Tool API",
        description="Backend API for editing C4 workspaces and their DSL",
        version="1.0.0",
    )

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "workspace_open": manager.workspace is not None}

    # --- Workspace State ---

    @app.get("/api/workspace")
    async def get_workspace():
        """Get the current workspace state."""
        return manager.get_state()

    @app.patch("/api/workspace")
    async def update_workspace(request: WorkspaceInfoRequest):
        """Update workspace name and description."""
        try:
            workspace = manager.update_workspace_info(
                name=request.name,
                description=request.description
            )
            return {"success": True, "workspace": workspace.to_json_dict()}
        except C4Error as e:
            raise _http_error(e)

    # --- File Operations ---

    @app.post("/api/workspace/new")
    async def new_workspace(name: Optional[str] = Query(default=None)):
        """Create a new empty workspace."""
        workspace = manager.new_workspace(name=name)
        return {"success": True, "workspace": workspace.to_json_dict()}

    @app.post("/api/workspace/open")
    async def open_workspace(request: OpenRequest):
        """Open a workspace from a .dsl or .json file."""
        try:
            workspace = manager.open_workspace(request.file_path)
            return {
                "success": True,
                "workspace": workspace.to_json_dict(),
                "file_path": str(manager.file_path),
                "warnings": manager.last_warnings
            }
        except C4Error as e:
            raise _http_error(e)

    @app.post("/api/workspace/save")
    async def save_workspace(request: SaveRequest):
        """Save the workspace as DSL or JSON, chosen by extension."""
        try:
            path = manager.save_workspace(request.file_path)
            return {"success": True, "file_path": str(path)}
        except C4Error as e:
            raise _http_error(e)
        except OSError as e:
            raise HTTPException(status_code=500, detail=f"Failed to save: {e}")

    # --- Undo/Redo ---

    @app.post("/api/undo")
    async def undo():
        """Undo the last action."""
        workspace = manager.undo()
        if workspace:
            return {"success": True, "workspace": workspace.to_json_dict()}
        return {"success": False, "message": "Nothing to undo"}

    @app.post("/api/redo")
    async def redo():
        """Redo the last undone action."""
        workspace = manager.redo()
        if workspace:
            return {"success": True, "workspace": workspace.to_json_dict()}
        return {"success": False, "message": "Nothing to redo"}

    # --- Element Operations ---

    @app.post("/api/elements")
    async def create_element(request: CreateElementRequest):
        """Create a new element."""
        fields = request.model_dump(exclude={"kind", "x", "y"}, exclude_none=True)
        try:
            element = manager.add_element(
                request.kind,
                position=Position(x=request.x, y=request.y),
                **fields
            )
            return {"success": True, "element": element.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.get("/api/elements/{element_id}")
    async def get_element(element_id: str):
        element = manager.get_element(element_id)
        if element:
            return {"success": True, "element": element.model_dump(mode="json")}
        raise HTTPException(status_code=404, detail="Element not found")

    @app.patch("/api/elements/{element_id}")
    async def update_element(element_id: str, request: UpdateElementRequest):
        """Update an element. Only fields that are set are changed."""
        try:
            element = manager.update_element(element_id, **request.model_dump(exclude_none=True))
            return {"success": True, "element": element.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.post("/api/elements/{element_id}/rename")
    async def rename_element(element_id: str, request: RenameRequest):
        """Rename an element; the response carries its new id."""
        try:
            element = manager.rename_element(element_id, request.name)
            return {"success": True, "element": element.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.delete("/api/elements/{element_id}")
    async def delete_element(element_id: str):
        """Delete an element, its descendants and their relationships."""
        try:
            manager.delete_element(element_id)
            return {"success": True}
        except C4Error as e:
            raise _http_error(e)

    # --- Relationship Operations ---

    @app.post("/api/relationships")
    async def create_relationship(request: CreateRelationshipRequest):
        try:
            relationship = manager.add_relationship(
                **request.model_dump(exclude_none=True)
            )
            return {"success": True, "relationship": relationship.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.patch("/api/relationships/{relationship_id}")
    async def update_relationship(relationship_id: str, request: UpdateRelationshipRequest):
        try:
            relationship = manager.update_relationship(
                relationship_id, **request.model_dump(exclude_none=True)
            )
            return {"success": True, "relationship": relationship.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.delete("/api/relationships/{relationship_id}")
    async def delete_relationship(relationship_id: str):
        try:
            manager.delete_relationship(relationship_id)
            return {"success": True}
        except C4Error as e:
            raise _http_error(e)

    # --- View Operations ---

    @app.post("/api/views")
    async def create_view(request: CreateViewRequest):
        try:
            view = manager.add_view(
                request.kind,
                request.key,
                **request.model_dump(exclude={"kind", "key"}, exclude_none=True)
            )
            return {"success": True, "view": view.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.patch("/api/views/{view_id}")
    async def update_view(view_id: str, request: UpdateViewRequest):
        try:
            view = manager.update_view(view_id, **request.model_dump(exclude_none=True))
            return {"success": True, "view": view.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.post("/api/views/{view_id}/rename")
    async def rename_view(view_id: str, request: RenameRequest):
        try:
            view = manager.rename_view(view_id, request.name)
            return {"success": True, "view": view.model_dump(mode="json")}
        except C4Error as e:
            raise _http_error(e)

    @app.delete("/api/views/{view_id}")
    async def delete_view(view_id: str):
        try:
            manager.delete_view(view_id)
            return {"success": True}
        except C4Error as e:
            raise _http_error(e)

    # --- Layout ---

    @app.post("/api/layout/auto")
    async def auto_layout():
        """Arrange every element on the grid."""
        try:
            if manager.auto_layout():
                return {"success": True}
        except C4Error as e:
            raise _http_error(e)
        raise HTTPException(status_code=400, detail="No elements to layout")

    # --- Stateless DSL ---

    @app.post("/api/dsl/parse")
    async def parse_dsl_text(request: DSLTextRequest):
        """Parse DSL text into a workspace without touching the open one."""
        try:
            result = parse_dsl_with_diagnostics(request.dsl)
        except C4Error as e:
            raise _http_error(e)
        return {
            "success": True,
            "workspace": result.workspace.to_json_dict(),
            "warnings": result.warnings
        }

    @app.post("/api/dsl/generate")
    async def generate_dsl_text(workspace: Workspace):
        """Generate DSL text for a posted workspace."""
        return {"success": True, "dsl": generate_dsl(workspace)}

    @app.post("/api/dsl/validate")
    async def validate_dsl_text(request: DSLTextRequest):
        """Pre-flight check for DSL text. Invalid text is reported, not rejected."""
        try:
            validate_dsl(request.dsl)
        except C4Error as e:
            return {"success": True, "valid": False, "error": e.to_dict()}
        return {"success": True, "valid": True}

    # --- Stateful DSL ---

    @app.post("/api/dsl/import")
    async def import_dsl(request: DSLTextRequest):
        """Replace the open workspace with parsed DSL, keeping known positions."""
        try:
            workspace = manager.import_dsl(request.dsl)
        except C4Error as e:
            raise _http_error(e)
        return {
            "success": True,
            "workspace": workspace.to_json_dict(),
            "warnings": manager.last_warnings
        }

    @app.get("/api/dsl/export")
    async def export_dsl():
        """Generate DSL for the open workspace."""
        try:
            dsl = manager.export_dsl()
        except C4Error as e:
            raise _http_error(e)
        return {
            "success": True,
            "dsl": dsl,
            "filename": dsl_filename(manager.workspace.name)
        }

    # --- Validation ---

    @app.get("/api/validate")
    async def validate_current_workspace():
        """
        Validate the current workspace for structural issues.

        Returns a list of issues (errors, warnings, info) and a summary.
        """
        try:
            report = manager.validate()
        except C4Error as e:
            raise _http_error(e)
        return {"success": True, **report}

    # --- Enums for Frontend ---

    @app.get("/api/enums/element-kinds")
    async def get_element_kinds():
        return {"kinds": [{"value": k.value, "label": k.label} for k in ElementKind]}

    @app.get("/api/enums/relationship-kinds")
    async def get_relationship_kinds():
        return {"kinds": [k.value for k in RelationshipKind]}

    @app.get("/api/enums/view-kinds")
    async def get_view_kinds():
        return {"kinds": [k.value for k in ViewKind]}

    return app


app = create_app()


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=HOST, port=PORT)
