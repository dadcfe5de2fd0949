"""
View synthesis - guarantee the structural completeness of a workspace's views.

After a parse (or any hand edit) a workspace always has:
- a landscape view, using the well-known `landscape` id
- a container view for every software system
- a deployment view for every deployment node

Every function here is idempotent and returns a new workspace.
"""

from typing import TYPE_CHECKING

from .config import LANDSCAPE_VIEW_ID
from .models import ElementKind, View, ViewKind, landscape_view

if TYPE_CHECKING:
    from .models import Element, Workspace


def container_view_key(system_id: str) -> str:
    return f"view-{system_id}"


def component_view_key(container_id: str) -> str:
    return f"components-{container_id}"


def deployment_view_key(node_id: str) -> str:
    return f"deploy-{node_id}"


def container_view_for(system: "Element") -> View:
    """Auto-generated container view anchored on a software system."""
    return View(
        key=container_view_key(system.id),
        kind=ViewKind.CONTAINER,
        software_system_id=system.id,
        name=f"{system.name} - Containers",
        description="Auto-generated container view",
    )


def component_view_for(container: "Element") -> View:
    """Auto-generated component view anchored on a container."""
    return View(
        key=component_view_key(container.id),
        kind=ViewKind.COMPONENT,
        container_id=container.id,
        name=f"{container.name} - Components",
        description="Auto-generated component view",
    )


def deployment_view_for(node: "Element") -> View:
    """Auto-generated deployment view for a deployment node."""
    return View(
        key=deployment_view_key(node.id),
        kind=ViewKind.DEPLOYMENT,
        name=f"{node.name} - Deployment",
        description="Auto-generated deployment view",
    )


def has_deployment_view(views: list[View], node: "Element") -> bool:
    """Deployment views have no anchor field: match by derived key or by name."""
    return any(
        v.kind == ViewKind.DEPLOYMENT
        and (v.key == deployment_view_key(node.id) or node.name in v.name)
        for v in views
    )


def ensure_landscape_view(workspace: "Workspace") -> "Workspace":
    """Insert the root landscape view first if no landscape view exists."""
    if any(v.kind == ViewKind.SYSTEM_LANDSCAPE for v in workspace.views):
        return workspace
    view = landscape_view("Auto-generated landscape view")
    if workspace.get_view(LANDSCAPE_VIEW_ID) is not None:
        view.id = f"{LANDSCAPE_VIEW_ID}-root"
    return workspace.model_copy(update={"views": [view, *workspace.views]})


def ensure_container_views(workspace: "Workspace") -> "Workspace":
    """Add a container view for every software system lacking one."""
    views = list(workspace.views)
    for system in workspace.elements:
        if system.kind != ElementKind.SOFTWARE_SYSTEM:
            continue
        if not any(
            v.kind == ViewKind.CONTAINER and v.software_system_id == system.id
            for v in views
        ):
            views.append(container_view_for(system))
    if len(views) == len(workspace.views):
        return workspace
    return workspace.model_copy(update={"views": views})


def ensure_deployment_views(workspace: "Workspace") -> "Workspace":
    """Add a deployment view for every deployment node lacking one."""
    views = list(workspace.views)
    for node in workspace.elements:
        if node.kind == ElementKind.DEPLOYMENT_NODE and not has_deployment_view(views, node):
            views.append(deployment_view_for(node))
    if len(views) == len(workspace.views):
        return workspace
    return workspace.model_copy(update={"views": views})


def synthesize_views(workspace: "Workspace") -> "Workspace":
    """Apply every view guarantee. Running it twice adds nothing the second time."""
    workspace = ensure_landscape_view(workspace)
    workspace = ensure_container_views(workspace)
    return ensure_deployment_views(workspace)
