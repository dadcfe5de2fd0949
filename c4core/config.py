"""
Configuration constants for the C4 DSL core.

Layout values for the parser's fallback grid, default element sizes,
style colours emitted by the generator, and file conventions.
"""

# Fallback grid used when a parsed element has no position metadata
DSL_LAYOUT = {
    "padding": 40,
    "element_width": 220,
    "element_height": 140,
    "col_gap": 60,
    "row_gap": 80,
    "cols_per_row": 4,
}

# Default on-canvas sizes (width, height) by element kind value
DEFAULT_SIZES = {
    "person": (160, 180),
    "softwareSystem": (200, 120),
    "container": (200, 120),
    "component": (180, 100),
    "deploymentNode": (240, 160),
    "infrastructureNode": (200, 120),
    "group": (600, 400),
}

# Style tag -> (background, text colour) for the generated styles block
STYLE_COLORS = {
    "Person": ("#08427b", "#ffffff"),
    "Software System": ("#1168bd", "#ffffff"),
    "Container": ("#438dd5", "#ffffff"),
    "Component": ("#85bbf0", "#000000"),
}
EXTERNAL_STYLE = ("#999999", "#ffffff")
EXTERNAL_TAG = "External"

DEFAULT_WORKSPACE_NAME = "Untitled Workspace"
DEFAULT_WORKSPACE_DESCRIPTION = "A new C4 model workspace"
IMPORTED_WORKSPACE_NAME = "Imported Workspace"

LANDSCAPE_VIEW_ID = "landscape"
LANDSCAPE_VIEW_NAME = "System Landscape"

DSL_EXTENSION = ".dsl"
DSL_FILE_EXTENSIONS = (".dsl", ".txt")
JSON_EXTENSION = ".json"

INDENT = "    "
