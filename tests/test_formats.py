from knowledge_assistant.formats import (
    parse_csv_rows,
    parse_key_value_lines,
    render_markdown,
)


def test_key_value_lines_split_on_first_equals():
    lines = ["a=b", "  spaced  =  out  ", "url=http://x?y=z", "nothing", ""]
    assert list(parse_key_value_lines(lines)) == [
        ("a", "b"),
        ("spaced", "out"),
        ("url", "http://x?y=z"),
    ]


def test_csv_rows_need_two_fields():
    rows = [["k", "v"], ["only"], [], ["k2", "v2", "ignored"]]
    assert list(parse_csv_rows(rows)) == [("k", "v"), ("k2", "v2")]


def test_render_markdown_empty():
    assert render_markdown({}) == "# Knowledge Base\n\n"
