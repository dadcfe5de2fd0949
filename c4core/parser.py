"""
Structurizr-style DSL parser.

Parsing runs in three stages:
1. `tokenize` normalises the text (line continuations, block comments,
   position directives hidden in comments) and splits it into statements
   at braces, so `a = person "A" { ... }` and one-line workspaces work.
2. `classify_statement` matches each statement against the small grammar
   this tool reads and writes.
3. `ModelBuilder` walks the classified statements with an explicit scope
   stack, then resolves relationships, view anchors and positions once
   every identifier is known.

Only unbalanced braces are fatal. Unknown statements are skipped and
relationships with unresolved endpoints are dropped with a warning.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .config import EXTERNAL_TAG, IMPORTED_WORKSPACE_NAME, LANDSCAPE_VIEW_ID
from .errors import DSLError
from .identifiers import IdentifierTable, sanitize_key
from .layout import PositionStore
from .models import (
    DECLARABLE_KINDS,
    Element,
    ElementKind,
    Relationship,
    RelationshipKind,
    Size,
    View,
    ViewKind,
    Workspace,
    generate_id,
)
from .views import deployment_view_key, synthesize_views

logger = logging.getLogger(__name__)


# --- Grammar ---

QUOTED = r'"((?:[^"\\]|\\.)*)"'
IDENT = r"[\w.]+"
NUMBER = r"-?\d+(?:\.\d+)?"

_KINDS = "|".join(k.value for k in DECLARABLE_KINDS)

ELEMENT_RE = re.compile(rf"^(?:({IDENT})\s*=\s*)?({_KINDS})\s+{QUOTED}(.*)$")
GROUP_RE = re.compile(rf"^group\s+{QUOTED}")
RELATIONSHIP_RE = re.compile(rf"^({IDENT})?\s*->\s*({IDENT})(.*)$")
WORKSPACE_RE = re.compile(r"^workspace\b(.*)$")
LANDSCAPE_RE = re.compile(r"^systemLandscape\b(.*)$")
ANCHORED_VIEW_RE = re.compile(
    rf"^(systemContext|container|component|deployment)\s+({IDENT}|\*)(.*)$"
)
ELEMENT_BLOCK_RE = re.compile(rf"^element\s+({IDENT})\s*\{{$")
ELEMENT_POSITION_RE = re.compile(rf"^element\s+({IDENT})\s+({NUMBER})\s+({NUMBER})")
POSITION_RE = re.compile(rf"^position\s+({NUMBER})\s+({NUMBER})")
TITLE_RE = re.compile(rf"^title\s+{QUOTED}")
COMMENT_PREFIX_RE = re.compile(r"^(?:#|//)+\s*")

THIS = "this"


def _unescape(value: str) -> str:
    """Undo the generator's escaping of quotes and newlines."""
    return re.sub(r'\\(["n])', lambda m: '"' if m.group(1) == '"' else "\n", value)


def quoted_args(text: str) -> list[str]:
    """All quoted string arguments in text, unescaped, in order."""
    return [_unescape(v) for v in re.findall(QUOTED, text)]


def split_tags(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def brace_counts(text: str) -> tuple[int, int]:
    """Total number of `{` and `}` characters in text."""
    return text.count("{"), text.count("}")


def check_brace_balance(text: str) -> None:
    """Raise DSLError if the text's braces do not balance."""
    opened, closed = brace_counts(text)
    if opened != closed:
        raise DSLError(
            "DSL has unbalanced braces",
            details={"open": opened, "close": closed},
        )


# --- Tokenizer ---

@dataclass
class Statement:
    """One statement of DSL text; opening statements end with `{`."""
    text: str
    line: int
    from_comment: bool = False

    @property
    def opens(self) -> bool:
        return self.text.endswith("{")

    @property
    def body(self) -> str:
        """Statement text without a trailing `{`."""
        return self.text[:-1].rstrip() if self.opens else self.text


def _logical_lines(text: str) -> list[tuple[int, str]]:
    """Join `\\` continuations and drop `/* ... */` comments."""
    result: list[tuple[int, str]] = []
    buffer = ""
    start = 0
    in_block_comment = False

    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()

        if in_block_comment:
            if "*/" in line:
                in_block_comment = False
                line = line.split("*/", 1)[1].strip()
            else:
                continue
        if line.startswith("/*"):
            if "*/" in line:
                line = line.split("*/", 1)[1].strip()
            else:
                in_block_comment = True
                continue

        if not buffer:
            start = number
        if line.endswith("\\"):
            buffer += line[:-1].rstrip() + " "
            continue
        result.append((start, buffer + line))
        buffer = ""

    if buffer:
        result.append((start, buffer.rstrip()))
    return result


def _split_at_braces(line: str) -> list[str]:
    """Split a line into statements at braces outside quoted strings."""
    parts: list[str] = []
    current: list[str] = []
    in_quote = False
    escaped = False

    for char in line:
        if in_quote:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_quote = False
            continue

        if char == '"':
            in_quote = True
            current.append(char)
        elif char == "{":
            current.append(char)
            parts.append("".join(current).strip())
            current = []
        elif char == "}":
            pending = "".join(current).strip()
            if pending:
                parts.append(pending)
            parts.append("}")
            current = []
        else:
            current.append(char)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def tokenize(text: str) -> list[Statement]:
    """
    Normalise DSL text into statements.

    Comment lines are discarded unless they carry an `element <id> <x> <y>`
    position directive, which is then read as a live statement.
    """
    statements: list[Statement] = []

    for number, line in _logical_lines(text):
        if not line or line.startswith("!"):
            continue

        from_comment = False
        if line.startswith("#") or line.startswith("//"):
            content = COMMENT_PREFIX_RE.sub("", line)
            if not content.startswith("element "):
                continue
            line = content
            from_comment = True

        for part in _split_at_braces(line):
            statements.append(Statement(part, number, from_comment))

    return statements


# --- Line classification ---

class LineKind(str, Enum):
    """Closed set of statement kinds the builder understands."""
    CLOSE = "close"
    WORKSPACE = "workspace"
    MODEL = "model"
    VIEWS = "views"
    STYLES = "styles"
    ELEMENT = "element"
    GROUP = "group"
    RELATIONSHIP = "relationship"
    VIEW = "view"
    VIEW_ELEMENT = "view_element"
    ELEMENT_POSITION = "element_position"
    POSITION = "position"
    VIEW_TITLE = "view_title"
    UNKNOWN = "unknown"


@dataclass
class ClassifiedLine:
    kind: LineKind
    statement: Statement
    groups: tuple = ()


def classify_statement(statement: Statement, in_views: bool) -> ClassifiedLine:
    """
    Classify a statement.

    View-section grammar (view headers, element positions) is only tried
    while inside `views { ... }`; model grammar only outside it.
    """
    text = statement.text
    body = statement.body

    if text == "}":
        return ClassifiedLine(LineKind.CLOSE, statement)
    if body == "model" and statement.opens:
        return ClassifiedLine(LineKind.MODEL, statement)
    if body == "views" and statement.opens:
        return ClassifiedLine(LineKind.VIEWS, statement)
    if body == "styles" and statement.opens:
        return ClassifiedLine(LineKind.STYLES, statement)

    match = WORKSPACE_RE.match(body)
    if match:
        return ClassifiedLine(LineKind.WORKSPACE, statement, match.groups())

    if in_views:
        match = ELEMENT_POSITION_RE.match(text)
        if match:
            return ClassifiedLine(LineKind.ELEMENT_POSITION, statement, match.groups())
        match = ELEMENT_BLOCK_RE.match(text)
        if match:
            return ClassifiedLine(LineKind.VIEW_ELEMENT, statement, match.groups())
        match = POSITION_RE.match(text)
        if match:
            return ClassifiedLine(LineKind.POSITION, statement, match.groups())
        match = TITLE_RE.match(text)
        if match:
            return ClassifiedLine(LineKind.VIEW_TITLE, statement, match.groups())
        match = LANDSCAPE_RE.match(body)
        if match:
            return ClassifiedLine(
                LineKind.VIEW, statement, (ViewKind.SYSTEM_LANDSCAPE, None, match.group(1))
            )
        match = ANCHORED_VIEW_RE.match(body)
        if match:
            view_kind, anchor, rest = match.groups()
            return ClassifiedLine(LineKind.VIEW, statement, (ViewKind(view_kind), anchor, rest))
        return ClassifiedLine(LineKind.UNKNOWN, statement)

    # Position directives written as comments are only meaningful in views
    if statement.from_comment:
        return ClassifiedLine(LineKind.UNKNOWN, statement)

    match = ELEMENT_RE.match(body)
    if match:
        return ClassifiedLine(LineKind.ELEMENT, statement, match.groups())
    match = GROUP_RE.match(body)
    if match:
        return ClassifiedLine(LineKind.GROUP, statement, (_unescape(match.group(1)),))
    match = RELATIONSHIP_RE.match(body)
    if match:
        return ClassifiedLine(LineKind.RELATIONSHIP, statement, match.groups())

    return ClassifiedLine(LineKind.UNKNOWN, statement)


# --- Model building ---

class Scope(str, Enum):
    WORKSPACE = "workspace"
    MODEL = "model"
    VIEWS = "views"
    STYLES = "styles"
    ELEMENT = "element"
    GROUP = "group"
    VIEW = "view"
    VIEW_ELEMENT = "view_element"
    BLOCK = "block"  # Any other `{ ... }` block; contents are skipped


@dataclass
class Frame:
    scope: Scope
    identifier: Optional[str] = None   # Qualified DSL identifier (element frames)
    element_id: Optional[str] = None   # Element or group id


@dataclass
class PendingElement:
    id: str
    identifier: str  # Scope-qualified
    kind: ElementKind
    name: str
    description: str = ""
    technology: Optional[str] = None
    parent_id: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    is_external: bool = False


@dataclass
class PendingRelationship:
    source: str
    target: str
    description: str = ""
    technology: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    line: int = 0


@dataclass
class PendingView:
    view: View
    anchor: Optional[str] = None
    line: int = 0


@dataclass
class ParseResult:
    """A parsed workspace plus the recoverable problems found on the way."""
    workspace: Workspace
    warnings: list[str] = field(default_factory=list)


class ModelBuilder:
    """
    Builds a Workspace from classified statements.

    One builder serves one parse; its identifier table, position store and
    scope stack are discarded with it.
    """

    def __init__(self):
        self.identifiers = IdentifierTable()
        self.positions = PositionStore(self.identifiers)
        self.elements: list[PendingElement] = []
        self.relationships: list[PendingRelationship] = []
        self.views: list[PendingView] = []
        self.warnings: list[str] = []
        self.workspace_name: Optional[str] = None
        self.workspace_description: str = ""
        self._stack: list[Frame] = []

    # --- Scope state ---

    @property
    def in_views(self) -> bool:
        return any(f.scope == Scope.VIEWS for f in self._stack)

    @property
    def in_styles(self) -> bool:
        return any(f.scope == Scope.STYLES for f in self._stack)

    @property
    def _top(self) -> Optional[Frame]:
        return self._stack[-1] if self._stack else None

    def _nearest(self, *scopes: Scope) -> Optional[Frame]:
        for frame in reversed(self._stack):
            if frame.scope in scopes:
                return frame
        return None

    def _push_block(self, statement: Statement) -> None:
        if statement.opens:
            self._stack.append(Frame(Scope.BLOCK))

    # --- Feeding ---

    def feed(self, statement: Statement) -> None:
        """Process one statement."""
        if statement.text == "}":
            self._close()
            return

        top = self._top
        if self.in_styles or (top is not None and top.scope == Scope.BLOCK):
            self._push_block(statement)
            return

        line = classify_statement(statement, self.in_views)
        handler = self._handlers.get(line.kind)
        if handler is None:
            self._push_block(statement)
            return
        handler(self, line)

    def _close(self) -> None:
        if self._stack:
            self._stack.pop()

    def _on_workspace(self, line: ClassifiedLine) -> None:
        if self.workspace_name is None:
            args = quoted_args(line.groups[0] or "")
            self.workspace_name = args[0] if args else IMPORTED_WORKSPACE_NAME
            self.workspace_description = args[1] if len(args) > 1 else ""
        if line.statement.opens:
            self._stack.append(Frame(Scope.WORKSPACE))

    def _on_model(self, line: ClassifiedLine) -> None:
        self._stack.append(Frame(Scope.MODEL))

    def _on_views(self, line: ClassifiedLine) -> None:
        self._stack.append(Frame(Scope.VIEWS))

    def _on_styles(self, line: ClassifiedLine) -> None:
        self._stack.append(Frame(Scope.STYLES))

    def _parent_id(self) -> Optional[str]:
        top = self._top
        if top is not None and top.scope in (Scope.ELEMENT, Scope.GROUP):
            return top.element_id
        return None

    def _qualify(self, identifier: str) -> str:
        # Groups do not take part in identifier paths
        owner = self._nearest(Scope.ELEMENT)
        if owner is None or owner.identifier is None:
            return identifier
        return f"{owner.identifier}.{identifier}"

    def _on_element(self, line: ClassifiedLine) -> None:
        identifier, kind_value, name, rest = line.groups
        kind = ElementKind(kind_value)
        element_id = generate_id()
        args = quoted_args(rest)

        description = args[0] if args else ""
        if kind.has_technology:
            technology = args[1] if len(args) > 1 and args[1] else None
            tags = split_tags(args[2] if len(args) > 2 else None)
        else:
            technology = None
            tags = split_tags(args[1] if len(args) > 1 else None)

        is_external = EXTERNAL_TAG in tags
        tags = [t for t in tags if t != EXTERNAL_TAG]

        if identifier is None:
            identifier = f"_{element_id[:8]}"
        qualified = self._qualify(identifier)
        self.identifiers.register(identifier, qualified, element_id)

        self.elements.append(PendingElement(
            id=element_id,
            identifier=qualified,
            kind=kind,
            name=_unescape(name),
            description=description,
            technology=technology,
            parent_id=self._parent_id(),
            tags=tags,
            is_external=is_external,
        ))

        if line.statement.opens:
            self._stack.append(Frame(Scope.ELEMENT, identifier=qualified, element_id=element_id))

    def _on_group(self, line: ClassifiedLine) -> None:
        element_id = generate_id()
        self.elements.append(PendingElement(
            id=element_id,
            identifier=f"group_{element_id[:4]}",
            kind=ElementKind.GROUP,
            name=line.groups[0],
            parent_id=self._parent_id(),
        ))
        if line.statement.opens:
            self._stack.append(Frame(Scope.GROUP, element_id=element_id))

    def _on_relationship(self, line: ClassifiedLine) -> None:
        source, target, rest = line.groups
        owner = self._nearest(Scope.ELEMENT)
        if source is None or source == THIS:
            if owner is None:
                self._warn(
                    f"Line {line.statement.line}: relationship without a source outside an element block"
                )
                return
            source = owner.identifier
        if target == THIS and owner is not None:
            target = owner.identifier

        args = quoted_args(rest)
        self.relationships.append(PendingRelationship(
            source=source,
            target=target,
            description=args[0] if args else "",
            technology=args[1] if len(args) > 1 and args[1] else None,
            tags=split_tags(args[2] if len(args) > 2 else None),
            line=line.statement.line,
        ))

    def _on_view(self, line: ClassifiedLine) -> None:
        view_kind, anchor, rest = line.groups
        args = quoted_args(rest)
        key = sanitize_key(args[0]) if args else ""
        description = args[1] if len(args) > 1 else ""

        view = View(
            key=key or f"{view_kind.value}-{len(self.views) + 1}",
            kind=view_kind,
            name=args[0] if args else key,
            description=description,
        )
        if view_kind == ViewKind.SYSTEM_LANDSCAPE and not any(
            v.view.id == LANDSCAPE_VIEW_ID for v in self.views
        ):
            view.id = LANDSCAPE_VIEW_ID

        self.views.append(PendingView(view, anchor, line.statement.line))
        if line.statement.opens:
            self._stack.append(Frame(Scope.VIEW))

    def _on_view_element(self, line: ClassifiedLine) -> None:
        self._stack.append(Frame(Scope.VIEW_ELEMENT, identifier=line.groups[0]))

    def _on_element_position(self, line: ClassifiedLine) -> None:
        identifier, x, y = line.groups
        self.positions.record(identifier, float(x), float(y))

    def _on_position(self, line: ClassifiedLine) -> None:
        top = self._top
        if top is not None and top.scope == Scope.VIEW_ELEMENT:
            x, y = line.groups
            self.positions.record(top.identifier, float(x), float(y))

    def _on_view_title(self, line: ClassifiedLine) -> None:
        top = self._top
        if top is not None and top.scope == Scope.VIEW and self.views:
            self.views[-1].view.name = _unescape(line.groups[0])

    _handlers = {
        LineKind.WORKSPACE: _on_workspace,
        LineKind.MODEL: _on_model,
        LineKind.VIEWS: _on_views,
        LineKind.STYLES: _on_styles,
        LineKind.ELEMENT: _on_element,
        LineKind.GROUP: _on_group,
        LineKind.RELATIONSHIP: _on_relationship,
        LineKind.VIEW: _on_view,
        LineKind.VIEW_ELEMENT: _on_view_element,
        LineKind.ELEMENT_POSITION: _on_element_position,
        LineKind.POSITION: _on_position,
        LineKind.VIEW_TITLE: _on_view_title,
    }

    # --- Finishing ---

    def _build_elements(self) -> list[Element]:
        elements = []
        for index, pending in enumerate(self.elements):
            size = None
            if pending.kind == ElementKind.GROUP:
                width, height = pending.kind.default_size
                size = Size(width=width, height=height)
            elements.append(Element(
                id=pending.id,
                kind=pending.kind,
                name=pending.name,
                description=pending.description,
                technology=pending.technology,
                tags=pending.tags,
                parent_id=pending.parent_id,
                is_external=pending.is_external,
                position=self.positions.resolve(pending.identifier, index),
                size=size,
            ))
        return elements

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def _resolve_relationships(self) -> list[Relationship]:
        relationships = []
        for pending in self.relationships:
            source_id = self.identifiers.resolve(pending.source)
            target_id = self.identifiers.resolve(pending.target)
            if source_id and target_id:
                relationships.append(Relationship(
                    source_id=source_id,
                    target_id=target_id,
                    description=pending.description,
                    technology=pending.technology,
                    kind=RelationshipKind.USES,
                    tags=pending.tags,
                ))
            else:
                self._warn(
                    f"Line {pending.line}: could not resolve relationship elements: "
                    f"{pending.source} -> {pending.target}"
                )
        return relationships

    def _resolve_views(self, elements: list[Element]) -> list[View]:
        kinds = {e.id: e.kind for e in elements}
        views = []
        for pending in self.views:
            view = pending.view
            if pending.anchor is None:
                views.append(view)
                continue

            anchor_id = None if pending.anchor == "*" else self.identifiers.resolve(pending.anchor)
            if view.kind == ViewKind.DEPLOYMENT:
                if anchor_id and kinds.get(anchor_id) == ElementKind.DEPLOYMENT_NODE:
                    view.key = deployment_view_key(anchor_id)
                views.append(view)
            elif anchor_id is None:
                self._warn(
                    f"Line {pending.line}: could not resolve {view.kind.value} view anchor: "
                    f"{pending.anchor}"
                )
            elif view.kind == ViewKind.COMPONENT:
                views.append(view.model_copy(update={"container_id": anchor_id}))
            else:
                views.append(view.model_copy(update={"software_system_id": anchor_id}))
        return views

    def build(self) -> ParseResult:
        """Resolve deferred references and assemble the workspace."""
        elements = self._build_elements()
        relationships = self._resolve_relationships()
        views = self._resolve_views(elements)

        workspace = Workspace(
            name=self.workspace_name or IMPORTED_WORKSPACE_NAME,
            description=self.workspace_description,
            elements=elements,
            relationships=relationships,
            views=views,
        )
        return ParseResult(synthesize_views(workspace), self.warnings)


def parse_dsl_with_diagnostics(text: str) -> ParseResult:
    """
    Parse DSL text into a workspace, returning recoverable warnings too.

    Raises:
        DSLError: if the text's braces do not balance
    """
    check_brace_balance(text)

    builder = ModelBuilder()
    for statement in tokenize(text):
        builder.feed(statement)
    return builder.build()


def parse_dsl(text: str) -> Workspace:
    """Parse DSL text into a workspace."""
    return parse_dsl_with_diagnostics(text).workspace
