from datetime import datetime

import pytest

from canvasnotes.schemas.block import (
    BlockRecord,
    LinkContent,
    OpaqueContent,
    Position,
    TextContent,
    coerce_position,
    content_label,
    parse_block_content,
)
from canvasnotes.schemas.canvas import DEFAULT_CANVAS_TITLE, resolve_canvas_title


@pytest.mark.parametrize(
    "raw,expected",
    [
        ({"x": 1, "y": 2}, Position(x=1, y=2)),
        ({"x": -1.5, "y": 0, "extra": True}, Position(x=-1.5, y=0)),
        (Position(x=3, y=4), Position(x=3, y=4)),
        ({"x": None, "y": 2}, None),
        ({"x": "1", "y": 2}, None),
        ({"x": False, "y": 2}, None),
        ({"x": float("inf"), "y": 2}, None),
        ({"x": 10**400, "y": 0}, None),
        ({"x": 2**53, "y": 0}, Position(x=2**53, y=0)),
        ({"y": 2}, None),
        ("1,2", None),
        (None, None),
    ],
)
def test_coerce_position(raw, expected):
    assert coerce_position(raw) == expected


@pytest.mark.parametrize(
    "title,expected",
    [(None, DEFAULT_CANVAS_TITLE), ("", DEFAULT_CANVAS_TITLE), ("  ", DEFAULT_CANVAS_TITLE), (" a b ", "a b")],
)
def test_resolve_canvas_title(title, expected):
    assert resolve_canvas_title(title) == expected
    assert resolve_canvas_title(resolve_canvas_title(title)) == expected


def test_parse_block_content_variants():
    assert isinstance(parse_block_content("text", {"text": "hi"}), TextContent)
    assert isinstance(parse_block_content("link", {"url": "https://x.example"}), LinkContent)
    # Recognized type with the wrong shape falls back to opaque
    assert isinstance(parse_block_content("text", {"url": "https://x.example"}), OpaqueContent)
    assert isinstance(parse_block_content("sticky", {"color": "red"}), OpaqueContent)


@pytest.mark.parametrize(
    "block_type,raw",
    [
        ("text", {"text": "hi", "style": {"bold": True}}),
        ("link", {"url": "https://x.example"}),
        ("sticky", {"color": "red", "items": [1, 2]}),
        ("text", {}),
        ("custom", ["not", "a", "mapping"]),
    ],
)
def test_block_content_round_trips(block_type, raw):
    assert parse_block_content(block_type, raw).to_json() == raw


def test_content_label():
    assert content_label("text", {"text": "hello"}) == "hello"
    assert content_label("link", {"url": "https://x.example"}) == "https://x.example"
    assert content_label("styled", {"text": "shown"}) == "shown"
    assert content_label("sticky", {"color": "red"}) == "sticky"
    assert content_label("text", None) == "text"
    # Wrong shape for the declared type falls back to the shape, then the type
    assert content_label("text", {"url": "https://x.example"}) == "https://x.example"
    assert content_label("link", {"url": 7}) == "link"
    assert content_label("custom", ["text"]) == "custom"


def test_block_record_typed_content():
    record = BlockRecord(
        id="b1",
        canvas_id="c1",
        user_id="u1",
        type="link",
        content={"url": "https://x.example", "title": "X"},
        position=Position(x=0, y=0),
        created_at=datetime(2026, 1, 1),
        updated_at=datetime(2026, 1, 1),
    )

    assert isinstance(record.typed_content, LinkContent)
    assert record.typed_content.url == "https://x.example"
    assert record.size.width == 200.0
    assert record.created_at.tzinfo is not None
