import re

from TexPreview.scanner import (
    count_environments,
    extract_command,
    find_environment,
    find_matching,
    parse_keyval,
    read_args,
    read_group,
    replace_commands,
    replace_environments,
    split_items,
    split_top_level,
)


def test_find_matching_counts_depth():
    text = "{a{b}c}d"
    assert find_matching(text, 0) == 6
    assert find_matching("{open", 0) == -1


def test_find_matching_skips_escaped_braces():
    text = r"{a\}b}"
    assert find_matching(text, 0) == len(text) - 1


def test_read_group_leaves_position_on_failure():
    assert read_group("no group", 2) == (None, 2)
    value, end = read_group("  {x}rest", 0)
    assert value == "x"
    assert end == 5


def test_read_args_stops_at_missing_argument():
    args, pos = read_args("{a}{b} tail", 0, 3)
    assert args == ["a", "b"]
    assert pos == 6


def test_extract_command_handles_nested_braces():
    value, rest = extract_command(r"\title{A {nested} title} body", "title")
    assert value == "A {nested} title"
    assert rest == " body"


def test_replace_commands_passes_optional_argument():
    text = r"see \foo[opt]{x} and \foobar{y}"
    result = replace_commands(text, "foo", lambda args, opt: f"<{opt}:{args[0]}>")
    assert result == r"see <opt:x> and \foobar{y}"


def test_find_environment_is_outermost_not_first_end():
    text = r"\begin{a}x\begin{a}y\end{a}z\end{a}"
    match = find_environment(text, "a")
    assert match.content == r"x\begin{a}y\end{a}z"
    assert match.end == len(text)


def test_find_environment_reads_options():
    match = find_environment(r"\begin{figure}[htb]body\end{figure}", "figure")
    assert match.options == "htb"
    assert match.content == "body"


def test_replace_environments_visits_names_in_source_order():
    text = r"\begin{b}1\end{b}\begin{a}2\end{a}\begin{b}3\end{b}"
    seen = []

    def render(env):
        seen.append(env.name)
        return env.content

    assert replace_environments(text, ["a", "b"], render) == "123"
    assert seen == ["b", "a", "b"]


def test_split_top_level_ignores_nested_separators():
    assert split_top_level("a,{b,c},d", ",") == ["a", "{b,c}", "d"]
    assert split_top_level(r"a & \begin{x}b & c\end{x} & d", re.compile("&")) == [
        "a ",
        r" \begin{x}b & c\end{x} ",
        " d",
    ]


def test_split_items_keeps_nested_lists_in_their_item():
    content = r"""
\item one
\item[x] two \begin{itemize}\item inner\end{itemize}
"""
    items = split_items(content)
    assert len(items) == 2
    assert items[0] == (None, "one")
    assert items[1][0] == "x"
    assert r"\item inner" in items[1][1]


def test_count_environments_in_order_of_appearance():
    text = r"\begin{itemize}\end{itemize}\end{itemize}\begin{center}\end{center}"
    assert count_environments(text) == {"itemize": (1, 2), "center": (1, 1)}


def test_parse_keyval_flags_and_values():
    result = parse_keyval("twocolumn, 11pt, width={3cm}, language=Python")
    assert result == {"twocolumn": True, "11pt": True, "width": "3cm", "language": "Python"}
    assert parse_keyval(None) == {}
