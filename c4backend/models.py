"""
API request models for the backend.

Partial-update requests use None for "leave unchanged"; the endpoint
passes only the fields that were set (`model_dump(exclude_none=True)`).
"""

from typing import Optional

from pydantic import BaseModel, Field

from c4core.models import ElementKind, Position, RelationshipKind, Size, ViewKind


class CreateElementRequest(BaseModel):
    """Request to create a new element."""
    kind: ElementKind
    name: Optional[str] = None  # Defaults to "New <Kind Label>"
    description: str = ""
    technology: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parent_id: Optional[str] = None
    is_external: bool = False
    x: float = 0
    y: float = 0
    size: Optional[Size] = None


class UpdateElementRequest(BaseModel):
    """Request to update an existing element (partial update)."""
    description: Optional[str] = None
    technology: Optional[str] = None
    tags: Optional[list[str]] = None
    parent_id: Optional[str] = None
    is_external: Optional[bool] = None
    position: Optional[Position] = None
    size: Optional[Size] = None


class RenameRequest(BaseModel):
    """Rename an element or view; both are re-keyed from the new name."""
    name: str


class CreateRelationshipRequest(BaseModel):
    """Request to create a new relationship."""
    source_id: str
    target_id: str
    description: str = "Uses"
    technology: Optional[str] = None
    kind: RelationshipKind = RelationshipKind.USES
    tags: list[str] = Field(default_factory=list)


class UpdateRelationshipRequest(BaseModel):
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    description: Optional[str] = None
    technology: Optional[str] = None
    kind: Optional[RelationshipKind] = None
    tags: Optional[list[str]] = None


class CreateViewRequest(BaseModel):
    kind: ViewKind
    key: str
    name: str = ""
    description: str = ""
    software_system_id: Optional[str] = None
    container_id: Optional[str] = None


class UpdateViewRequest(BaseModel):
    key: Optional[str] = None
    description: Optional[str] = None
    software_system_id: Optional[str] = None
    container_id: Optional[str] = None


class WorkspaceInfoRequest(BaseModel):
    """Request to update workspace name and description."""
    name: Optional[str] = None
    description: Optional[str] = None


class OpenRequest(BaseModel):
    file_path: str


class SaveRequest(BaseModel):
    file_path: Optional[str] = None


class DSLTextRequest(BaseModel):
    """DSL text for the parse, validate and import endpoints."""
    dsl: str
