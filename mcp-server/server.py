#!/usr/bin/env python3
"""
C4 DSL Tool MCP Server

Provides MCP tools for AI agents to read and edit the open C4 workspace
and to translate between workspaces and Structurizr-style DSL text.
Every tool goes through the backend API, so changes land in the same
state the frontend and other clients see.
"""

import json
import os
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

# Backend API URL
API_BASE = os.environ.get("C4DSL_API_BASE", "http://127.0.0.1:8765/api")

# Create MCP server
mcp = FastMCP("c4-dsl-tool")


class APIError(Exception):
    """The backend answered with an error status."""


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the C4 DSL tool backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=30.0) as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
        elif method == "PATCH":
            response = client.patch(url, json=kwargs.get("json"))
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            error = response.json().get("detail", "Unknown error")
            raise APIError(f"API error: {error}")

        return response.json()


def _dump(result: dict) -> str:
    return json.dumps(result, indent=2)


# ============================================================================
# WORKSPACE TOOLS
# ============================================================================

@mcp.tool()
def c4_get_workspace() -> str:
    """
    Get the full current workspace state.

    Returns every element, relationship and view plus the current file
    path. Use this to learn element ids before making changes.
    """
    return _dump(api_request("GET", "/workspace"))


@mcp.tool()
def c4_new_workspace(name: Optional[str] = None) -> str:
    """
    Create a new empty workspace holding only the landscape view.

    Args:
        name: Name for the new workspace
    """
    params = {"name": name} if name else None
    return _dump(api_request("POST", "/workspace/new", params=params))


@mcp.tool()
def c4_open(file_path: str) -> str:
    """
    Open a workspace file as the active workspace.

    Args:
        file_path: Full path to a .dsl, .txt or .json file
    """
    return _dump(api_request("POST", "/workspace/open", json={"file_path": file_path}))


@mcp.tool()
def c4_save(file_path: Optional[str] = None) -> str:
    """
    Save the current workspace. A .dsl path writes DSL, .json writes JSON.

    Args:
        file_path: Path to save to (uses current path if not specified)
    """
    return _dump(api_request("POST", "/workspace/save", json={"file_path": file_path}))


# ============================================================================
# DSL TOOLS
# ============================================================================

@mcp.tool()
def c4_import_dsl(dsl: str) -> str:
    """
    Replace the open workspace with the model described by DSL text.

    Args:
        dsl: Complete workspace DSL text

    Elements that keep their name and kind keep their canvas position.
    Relationships naming unknown identifiers are dropped and listed
    under "warnings".
    """
    return _dump(api_request("POST", "/dsl/import", json={"dsl": dsl}))


@mcp.tool()
def c4_export_dsl() -> str:
    """Generate DSL text for the open workspace, with a suggested file name."""
    return _dump(api_request("GET", "/dsl/export"))


@mcp.tool()
def c4_validate_dsl(dsl: str) -> str:
    """
    Pre-flight check DSL text without importing it.

    Args:
        dsl: Candidate DSL text

    Reports empty text, a missing workspace block or unbalanced braces.
    """
    return _dump(api_request("POST", "/dsl/validate", json={"dsl": dsl}))


# ============================================================================
# ELEMENT TOOLS
# ============================================================================

@mcp.tool()
def c4_add_element(
    kind: str,
    name: str,
    description: str = "",
    technology: Optional[str] = None,
    parent_id: Optional[str] = None,
    tags: Optional[list[str]] = None,
    is_external: bool = False,
    x: float = 0,
    y: float = 0
) -> str:
    """
    Add an element to the model.

    Args:
        kind: person, softwareSystem, container, component, deploymentNode,
            infrastructureNode or group
        name: Display name
        description: Optional description
        technology: Technology (containers, components and nodes only)
        parent_id: Id of the enclosing element (system for a container,
            container for a component)
        tags: Extra style tags
        is_external: Mark as outside the modelled organisation
        x: X coordinate on canvas
        y: Y coordinate on canvas

    Software systems and containers get their drill-down view automatically.
    """
    payload = {
        "kind": kind,
        "name": name,
        "description": description,
        "tags": tags or [],
        "is_external": is_external,
        "x": x,
        "y": y
    }
    if technology is not None:
        payload["technology"] = technology
    if parent_id is not None:
        payload["parent_id"] = parent_id
    return _dump(api_request("POST", "/elements", json=payload))


@mcp.tool()
def c4_update_element(
    element_id: str,
    description: Optional[str] = None,
    technology: Optional[str] = None,
    tags: Optional[list[str]] = None,
    x: Optional[float] = None,
    y: Optional[float] = None
) -> str:
    """
    Modify an element's properties or position. Use c4_rename_element to
    change its name.

    Args:
        element_id: ID of the element to update
        description: New description (optional)
        technology: New technology (optional)
        tags: New tags list (replaces existing, optional)
        x: New X coordinate (optional, needs y)
        y: New Y coordinate (optional, needs x)
    """
    updates = {}
    if description is not None:
        updates["description"] = description
    if technology is not None:
        updates["technology"] = technology
    if tags is not None:
        updates["tags"] = tags
    if x is not None and y is not None:
        updates["position"] = {"x": x, "y": y}
    return _dump(api_request("PATCH", f"/elements/{element_id}", json=updates))


@mcp.tool()
def c4_rename_element(element_id: str, name: str) -> str:
    """
    Rename an element.

    Args:
        element_id: Current ID of the element
        name: New display name

    The element gets a new readable id derived from the name; the response
    carries it. Relationships and views follow the new id.
    """
    return _dump(api_request("POST", f"/elements/{element_id}/rename", json={"name": name}))


@mcp.tool()
def c4_delete_element(element_id: str) -> str:
    """
    Remove an element with everything nested inside it, their
    relationships and the views anchored on them.

    Args:
        element_id: ID of the element to delete
    """
    return _dump(api_request("DELETE", f"/elements/{element_id}"))


# ============================================================================
# RELATIONSHIP TOOLS
# ============================================================================

@mcp.tool()
def c4_add_relationship(
    source_id: str,
    target_id: str,
    description: str = "Uses",
    technology: Optional[str] = None
) -> str:
    """
    Connect two elements.

    Args:
        source_id: ID of the element the relationship starts from
        target_id: ID of the element it points to
        description: What the source does with the target
        technology: Protocol or technology (optional)
    """
    payload = {"source_id": source_id, "target_id": target_id, "description": description}
    if technology is not None:
        payload["technology"] = technology
    return _dump(api_request("POST", "/relationships", json=payload))


@mcp.tool()
def c4_delete_relationship(relationship_id: str) -> str:
    """
    Remove a relationship.

    Args:
        relationship_id: ID of the relationship to delete
    """
    return _dump(api_request("DELETE", f"/relationships/{relationship_id}"))


# ============================================================================
# ANALYSIS & HISTORY
# ============================================================================

@mcp.tool()
def c4_validate() -> str:
    """
    Check the open workspace for structural issues.

    Reports dangling references, self-referencing and duplicate
    relationships, unconnected elements and badly anchored views, each
    with a severity (error, warning, info), plus a summary.
    """
    return _dump(api_request("GET", "/validate"))


@mcp.tool()
def c4_undo() -> str:
    """Undo the last change to the workspace."""
    return _dump(api_request("POST", "/undo"))


@mcp.tool()
def c4_redo() -> str:
    """Redo the last undone change."""
    return _dump(api_request("POST", "/redo"))


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    mcp.run()
