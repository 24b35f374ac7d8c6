"""Suggestion ordering across history and filesystem sources."""

from __future__ import annotations

import os

import askcli
from askcli import ORIGIN_FILESYSTEM, ORIGIN_HISTORY, SUGGESTION_SEPARATOR, suggest


def _texts(items):
    return [item.text for item in items]


def test_history_matches_newest_first(session):
    for question in ("how do sockets work", "hello world", "say HELLO again"):
        session.append_exchange(question)
    result = suggest(session.history, "hello")
    assert _texts(result) == ["say HELLO again", "hello world"]
    assert all(item.origin == ORIGIN_HISTORY for item in result)


def test_empty_partial_lists_all_history(session):
    session.append_exchange("one")
    session.append_exchange("two")
    assert _texts(suggest(session.history, "")) == ["two", "one"]


def test_plain_strings_accepted_as_history():
    assert _texts(suggest(["alpha", "beta"], "a")) == ["beta", "alpha"]


def test_no_filesystem_lookup_without_separator(tmp_path, session):
    (tmp_path / "hello.txt").write_text("x")
    session.append_exchange("hello there")
    assert _texts(suggest(session.history, "hello")) == ["hello there"]


def test_filesystem_before_history_with_separator(tmp_path, session):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "b.js").write_text("x")
    (tmp_path / "a" / "c.py").write_text("x")
    session.append_exchange("a/b.js")
    session.append_exchange("hello world")
    session.append_exchange("list a/ files")

    result = suggest(session.history, "a/")
    # "a/b.js" matches both sources and is kept once, as a filesystem hit
    assert _texts(result) == ["a/b.js", "a/c.py", SUGGESTION_SEPARATOR.text, "list a/ files"]
    assert [item.origin for item in result] == [
        ORIGIN_FILESYSTEM,
        ORIGIN_FILESYSTEM,
        "separator",
        ORIGIN_HISTORY,
    ]


def test_dedup_without_history_group(tmp_path, session):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "b.js").write_text("x")
    session.append_exchange("a/b.js")
    session.append_exchange("hello world")
    assert _texts(suggest(session.history, "a/")) == ["a/b.js"]


def test_separator_between_groups(tmp_path, session):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "Main.js").write_text("x")
    (tmp_path / "src" / "util.js").write_text("x")
    session.append_exchange("explain src/main.js please")

    result = suggest(session.history, "src/main")
    assert _texts(result) == [
        os.path.join("src", "Main.js"),
        SUGGESTION_SEPARATOR.text,
        "explain src/main.js please",
    ]
    assert result[1] is SUGGESTION_SEPARATOR
    assert result[2].origin == ORIGIN_HISTORY


def test_basename_fragment_is_case_insensitive_substring(tmp_path):
    (tmp_path / "lib").mkdir()
    for name in ("README.md", "reader.py", "writer.py"):
        (tmp_path / "lib" / name).write_text("x")
    result = suggest([], "lib/EAD")
    assert _texts(result) == [os.path.join("lib", "README.md"), os.path.join("lib", "reader.py")]
    assert all(item.origin == ORIGIN_FILESYSTEM for item in result)


def test_paths_are_relative_to_working_directory(tmp_path, monkeypatch):
    (tmp_path / "proj" / "pkg").mkdir(parents=True)
    (tmp_path / "proj" / "pkg" / "mod.py").write_text("x")
    monkeypatch.chdir(tmp_path / "proj")
    absolute = str(tmp_path / "proj" / "pkg") + os.sep + "mo"
    assert _texts(suggest([], absolute)) == [os.path.join("pkg", "mod.py")]


def test_missing_directory_yields_no_filesystem_candidates(session):
    session.append_exchange("nope/missing thing")
    result = suggest(session.history, "nope/missing")
    assert _texts(result) == ["nope/missing thing"]


def test_file_used_as_directory_is_swallowed(tmp_path):
    (tmp_path / "plain.txt").write_text("x")
    assert suggest([], "plain.txt/") == []


def test_each_call_is_independent(tmp_path, session):
    (tmp_path / "d").mkdir()
    first = suggest(session.history, "d/")
    (tmp_path / "d" / "new.txt").write_text("x")
    second = suggest(session.history, "d/")
    assert first == []
    assert _texts(second) == [os.path.join("d", "new.txt")]


class _FakeReadline:
    def __init__(self, buffer):
        self.buffer = buffer

    def get_line_buffer(self):
        return self.buffer


def test_pager_completer_skips_separator(tmp_path, session):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.js").write_text("x")
    session.append_exchange("src/ layout question")
    pager = askcli.suggestion_pager(session, _FakeReadline("src/"))
    offered = []
    state = 0
    while True:
        text = pager.complete("src/", state)
        if text is None:
            break
        offered.append(text)
        state += 1
    assert offered == [os.path.join("src", "app.js"), "src/ layout question"]


def test_pager_scrolls_by_page(monkeypatch, session, capsys):
    for i in range(askcli.PAGE_SIZE + 3):
        session.append_exchange(f"question {i}")
    pager = askcli.suggestion_pager(session, _FakeReadline("question"))
    pager.complete("question", 0)

    pager.display("question", [], 0)
    first = capsys.readouterr().out
    assert "question 12" in first
    assert "question 2" not in first.replace("question 12", "")
    assert "3 more" in first

    pager.display("question", [], 0)
    second = capsys.readouterr().out
    assert "question 2" in second
    assert "question 12" not in second


def _offered(pager, text):
    offered = []
    while True:
        item = pager.complete(text, len(offered))
        if item is None:
            return offered
        offered.append(item)


def test_substring_matches_keep_typed_line(session, capsys):
    # readline puts the longest common prefix of the offered matches on the line
    session.append_exchange("say hello there")
    session.append_exchange("say HELLO again")
    pager = askcli.suggestion_pager(session, _FakeReadline("hello"))

    offered = _offered(pager, "hello")
    assert os.path.commonprefix(offered) == "hello"
    assert len(offered) > 1

    pager.display("hello", offered, 0)
    out = capsys.readouterr().out
    assert "say HELLO again" in out
    assert "say hello there" in out


def test_single_substring_match_completes_line(session):
    session.append_exchange("say hello there")
    pager = askcli.suggestion_pager(session, _FakeReadline("there"))
    assert _offered(pager, "there") == ["say hello there"]


def test_prefix_matches_offered_as_is(session):
    session.append_exchange("explain decorators")
    session.append_exchange("explain generators")
    pager = askcli.suggestion_pager(session, _FakeReadline("explain"))
    offered = _offered(pager, "explain")
    assert offered == ["explain generators", "explain decorators"]
    assert os.path.commonprefix(offered) == "explain "


def test_paging_survives_repeated_tab_on_substring_hits(session, capsys):
    for i in range(askcli.PAGE_SIZE + 2):
        session.append_exchange(f"ask {i} about hello")
    pager = askcli.suggestion_pager(session, _FakeReadline("hello"))
    offered = _offered(pager, "hello")
    assert os.path.commonprefix(offered) == "hello"
    pager.display("hello", offered, 0)
    capsys.readouterr()
    _offered(pager, "hello")
    pager.display("hello", offered, 0)
    second = capsys.readouterr().out
    assert "ask 1 about hello" in second
    assert "ask 11 about hello" not in second
