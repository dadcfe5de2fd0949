"""Tests for DSL tokenizing, classification and model building."""

import logging

import pytest

from c4core.errors import DSLError
from c4core.models import ElementKind, ViewKind
from c4core.parser import (
    LineKind,
    Statement,
    classify_statement,
    parse_dsl,
    parse_dsl_with_diagnostics,
    quoted_args,
    tokenize,
)


def _by_name(workspace, name):
    return next(e for e in workspace.elements if e.name == name)


# ── Tokenizer ──────────────────────────────────────────────────────

def test_tokenize_splits_one_line_workspace_at_braces():
    texts = [s.text for s in tokenize('workspace "W" { model { u = person "User" } }')]
    assert texts == ['workspace "W" {', "model {", 'u = person "User"', "}", "}"]


def test_tokenize_keeps_braces_inside_quotes():
    texts = [s.text for s in tokenize('a = person "Curly {brace}"')]
    assert texts == ['a = person "Curly {brace}"']


def test_tokenize_drops_comments_and_directives():
    dsl = """
    !identifiers hierarchical
    // a comment
    # another comment
    /* block
       comment */
    u = person "User"
    """
    texts = [s.text for s in tokenize(dsl)]
    assert texts == ['u = person "User"']


def test_tokenize_keeps_position_directives_from_comments():
    statements = tokenize("# element shop 10 20\n// element web 30 40")
    assert [s.text for s in statements] == ["element shop 10 20", "element web 30 40"]
    assert all(s.from_comment for s in statements)


def test_tokenize_joins_continuation_lines():
    statements = tokenize('u = person "User" \\\n    "Uses the system"')
    assert len(statements) == 1
    assert quoted_args(statements[0].text) == ["User", "Uses the system"]


def test_quoted_args_unescape_quotes_and_newlines():
    assert quoted_args(r'"Say \"hi\"" "two\nlines"') == ['Say "hi"', "two\nlines"]


# ── Classification ─────────────────────────────────────────────────

def test_classify_model_grammar():
    element = classify_statement(Statement('w = container "Web" {', 1), in_views=False)
    assert element.kind == LineKind.ELEMENT
    assert element.groups[:3] == ("w", "container", "Web")

    relationship = classify_statement(Statement('a.w -> a "Calls"', 2), in_views=False)
    assert relationship.kind == LineKind.RELATIONSHIP
    assert relationship.groups[:2] == ("a.w", "a")


def test_classify_view_grammar_only_inside_views():
    statement = Statement('container shop "key"', 1)
    assert classify_statement(statement, in_views=True).kind == LineKind.VIEW

    position = Statement("element shop 10 20", 1, from_comment=True)
    assert classify_statement(position, in_views=True).kind == LineKind.ELEMENT_POSITION
    assert classify_statement(position, in_views=False).kind == LineKind.UNKNOWN


def test_classify_unknown_statement():
    assert classify_statement(Statement("autoLayout lr", 1), in_views=True).kind == LineKind.UNKNOWN


# ── Model building ─────────────────────────────────────────────────

def test_parse_one_line_workspace():
    workspace = parse_dsl('workspace "W" { model { u = person "User" } }')

    assert workspace.name == "W"
    assert len(workspace.elements) == 1
    assert workspace.elements[0].kind == ElementKind.PERSON
    assert workspace.elements[0].name == "User"


def test_parse_qualified_relationship_reference():
    dsl = """
    workspace {
        model {
            a = softwareSystem "A" {
                w = container "Web"
            }
            a.w -> a "Calls"
        }
    }
    """
    workspace = parse_dsl(dsl)
    system = _by_name(workspace, "A")
    web = _by_name(workspace, "Web")

    assert web.parent_id == system.id
    assert len(workspace.relationships) == 1
    assert workspace.relationships[0].source_id == web.id
    assert workspace.relationships[0].target_id == system.id
    assert workspace.relationships[0].description == "Calls"


def test_parse_drops_unresolved_relationship_with_warning(caplog):
    dsl = """
    workspace {
        model {
            u = person "User"
            u -> ghost "Haunts"
        }
    }
    """
    with caplog.at_level(logging.WARNING, logger="c4core.parser"):
        result = parse_dsl_with_diagnostics(dsl)

    assert result.workspace.relationships == []
    assert len(result.warnings) == 1
    assert "ghost" in result.warnings[0]
    assert "ghost" in caplog.text


def test_parse_unbalanced_braces_raises():
    with pytest.raises(DSLError) as excinfo:
        parse_dsl('workspace { model { u = person "User" }')
    assert excinfo.value.details == {"open": 2, "close": 1}


def test_parse_empty_text_gives_placeholder_workspace():
    workspace = parse_dsl("")
    assert workspace.name == "Imported Workspace"
    assert workspace.elements == []
    assert [v.id for v in workspace.views] == ["landscape"]


def test_parse_argument_grammar_per_kind():
    dsl = """
    workspace {
        model {
            ops = person "Ops" "Operator" "External"
            s = softwareSystem "S" {
                c = container "API" "Serves" "Python" "Internal,External"
            }
        }
    }
    """
    workspace = parse_dsl(dsl)
    ops = _by_name(workspace, "Ops")
    api = _by_name(workspace, "API")

    assert ops.description == "Operator"
    assert ops.technology is None
    assert ops.is_external
    assert ops.tags == []

    assert api.technology == "Python"
    assert api.tags == ["Internal"]
    assert api.is_external


def test_parse_escaped_name():
    workspace = parse_dsl(r'workspace { model { p = person "Say \"hi\"" } }')
    assert workspace.elements[0].name == 'Say "hi"'


def test_parse_implicit_and_this_sources():
    dsl = """
    workspace {
        model {
            db = softwareSystem "DB"
            app = softwareSystem "App" {
                -> db "Reads"
                this -> db "Writes"
            }
        }
    }
    """
    workspace = parse_dsl(dsl)
    app = _by_name(workspace, "App")
    db = _by_name(workspace, "DB")

    assert [(r.source_id, r.target_id) for r in workspace.relationships] == [
        (app.id, db.id),
        (app.id, db.id),
    ]


def test_parse_groups_do_not_qualify_identifiers():
    dsl = """
    workspace {
        model {
            group "Internal" {
                s = softwareSystem "S"
            }
            u = person "U"
            u -> s "Uses"
        }
    }
    """
    workspace = parse_dsl(dsl)
    group = _by_name(workspace, "Internal")
    system = _by_name(workspace, "S")

    assert group.kind == ElementKind.GROUP
    assert group.size is not None
    assert (group.size.width, group.size.height) == (600, 400)
    assert system.parent_id == group.id
    assert len(workspace.relationships) == 1


def test_parse_recovers_positions(shop_dsl):
    workspace = parse_dsl(shop_dsl)

    customer = _by_name(workspace, "Customer")
    web = _by_name(workspace, "Web App")
    assert (customer.position.x, customer.position.y) == (100, 50)
    # Short identifier `web` is found for the nested `shop.web`
    assert (web.position.x, web.position.y) == (120, 300)


def test_parse_grid_fallback_for_missing_positions():
    dsl = """
    workspace {
        model {
            a = person "A"
            b = person "B"
            c = person "C"
            d = person "D"
            e = person "E"
        }
    }
    """
    workspace = parse_dsl(dsl)
    first = _by_name(workspace, "A")
    fifth = _by_name(workspace, "E")

    assert (first.position.x, first.position.y) == (40, 40)
    assert (fifth.position.x, fifth.position.y) == (40, 260)


def test_parse_block_position_syntax():
    dsl = """
    workspace {
        model {
            u = person "User"
        }
        views {
            systemLandscape "all" {
                element u {
                    position 75 125
                }
            }
        }
    }
    """
    user = parse_dsl(dsl).elements[0]
    assert (user.position.x, user.position.y) == (75, 125)


def test_parse_views(shop_dsl):
    result = parse_dsl_with_diagnostics(shop_dsl)
    workspace = result.workspace
    shop = _by_name(workspace, "Shop")
    payments = _by_name(workspace, "Payments")

    assert workspace.views[0].id == "landscape"
    assert workspace.views[0].description == "Everything"

    container_views = [v for v in workspace.views if v.kind == ViewKind.CONTAINER]
    keys = {v.software_system_id: v.key for v in container_views}
    assert keys[shop.id] == "shop-containers"
    # Synthesized for the system that had no container view
    assert keys[payments.id] == f"view-{payments.id}"
    assert result.warnings == []


def test_parse_drops_view_with_unknown_anchor(caplog):
    dsl = """
    workspace {
        model {
            s = softwareSystem "S"
        }
        views {
            component nowhere "lost" {
                include *
            }
        }
    }
    """
    with caplog.at_level(logging.WARNING, logger="c4core.parser"):
        result = parse_dsl_with_diagnostics(dsl)

    assert all(v.key != "lost" for v in result.workspace.views)
    assert any("nowhere" in w for w in result.warnings)


def test_parse_deployment_view_takes_derived_key():
    dsl = """
    workspace {
        model {
            live = deploymentNode "Live" "Production" "AWS"
        }
        views {
            deployment live "live" "Production deployment" {
                include *
            }
        }
    }
    """
    workspace = parse_dsl(dsl)
    node = workspace.elements[0]
    deployment_views = [v for v in workspace.views if v.kind == ViewKind.DEPLOYMENT]

    assert node.technology == "AWS"
    assert len(deployment_views) == 1
    assert deployment_views[0].key == f"deploy-{node.id}"


def test_parse_skips_styles_and_unknown_blocks():
    dsl = """
    workspace {
        model {
            u = person "User"
            properties {
                u = person "Not an element"
            }
        }
        views {
            styles {
                element "Person" {
                    shape Person
                }
            }
        }
    }
    """
    workspace = parse_dsl(dsl)
    assert [e.name for e in workspace.elements] == ["User"]


def test_view_title_sets_name():
    workspace = parse_dsl("""
        workspace {
            model {
                shop = softwareSystem "Shop"
            }
            views {
                container shop "shop-containers" {
                    title "Inside \\"the\\" shop"
                    include *
                }
            }
        }
    """)
    view = next(v for v in workspace.views if v.key == "shop-containers")
    assert view.name == 'Inside "the" shop'
