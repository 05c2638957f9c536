from __future__ import annotations

import logging
from pathlib import Path

import pytest

from histnav.aggregate import Aggregator
from histnav.command import Dialect
from histnav.ingest import dialect_for_path, ingest_file, join_continuations, parse_lines, read_tail
from tests.helpers import NOW, write_history


@pytest.mark.parametrize(
    "name, expected",
    [
        (".zsh_history", Dialect.EXTENDED),
        ("zsh_history.backup", Dialect.EXTENDED),
        (".bash_history", Dialect.PLAIN),
        ("my.bash_history", Dialect.PLAIN),
        ("history.txt", None),
    ],
)
def test_dialect_for_path(name, expected):
    assert dialect_for_path(Path("/home/user") / name) is expected


def test_dialect_uses_file_name_only():
    assert dialect_for_path("/opt/zsh/history.txt") is None


def test_missing_file_yields_nothing(tmp_path, caplog):
    with caplog.at_level(logging.DEBUG, logger="histnav"):
        assert ingest_file(tmp_path / "nope_history", now=NOW) == []
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_directory_source_is_skipped_with_warning(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="histnav"):
        assert ingest_file(tmp_path, now=NOW) == []
    assert any("Stopped reading" in r.getMessage() for r in caplog.records)


def test_plain_file_keys_are_synthetic_and_anchored_at_now(tmp_path):
    path = write_history(tmp_path, ".bash_history", ["ls", "cd /tmp", "make"])
    commands = ingest_file(path, now=NOW)
    assert [c.text for c in commands] == ["ls", "cd /tmp", "make"]
    assert [c.ordering_key for c in commands] == [NOW - 2, NOW - 1, NOW]
    assert all(c.synthetic for c in commands)


def test_blank_lines_keep_their_position(tmp_path):
    path = write_history(tmp_path, ".bash_history", ["cd foo", "", "cd foo"])
    commands = ingest_file(path, now=NOW)
    assert [(c.text, c.ordering_key) for c in commands] == [("cd foo", NOW - 2), ("cd foo", NOW)]


def test_only_last_max_lines_are_read(tmp_path):
    lines = [f"echo {i}" for i in range(10)]
    path = write_history(tmp_path, ".bash_history", lines)
    commands = ingest_file(path, max_lines=3, now=NOW)
    assert [c.text for c in commands] == ["echo 7", "echo 8", "echo 9"]
    assert commands[-1].ordering_key == NOW


def test_non_positive_max_lines_reads_everything(tmp_path):
    path = write_history(tmp_path, ".bash_history", [f"echo {i}" for i in range(10)])
    assert len(ingest_file(path, max_lines=0, now=NOW)) == 10


def test_zsh_file_uses_recorded_timestamps(tmp_path):
    path = write_history(
        tmp_path,
        ".zsh_history",
        [": 1600000000:0;git status", ": 1600000100:2:1;make", "plain line"],
    )
    commands = ingest_file(path, now=NOW)
    assert [(c.text, c.ordering_key, c.synthetic) for c in commands] == [
        ("git status", 1600000000.0, False),
        ("make", 1600000100.0, False),
        ("plain line", NOW, True),
    ]
    assert commands[1].exit_code == 1


def test_explicit_dialect_overrides_file_name(tmp_path):
    path = write_history(tmp_path, ".zsh_history", [": 1600000000:0;ls"])
    (command,) = ingest_file(path, dialect=Dialect.PLAIN, now=NOW)
    assert command.text == ": 1600000000:0;ls"


def test_unknown_file_detects_dialect_per_line(tmp_path):
    path = write_history(tmp_path, "history.txt", [": 1600000000:0;ls", "pwd"])
    commands = ingest_file(path, now=NOW)
    assert commands[0].ordering_key == 1600000000.0
    assert commands[1].synthetic


def test_bash_timestamp_comments_apply_to_next_command(tmp_path):
    path = write_history(tmp_path, ".bash_history", ["#1600000000", "ls", "pwd"])
    commands = ingest_file(path, now=NOW)
    assert [(c.text, c.ordering_key, c.synthetic) for c in commands] == [
        ("ls", 1600000000.0, False),
        ("pwd", NOW, True),
    ]


def test_implausible_bash_timestamp_is_ignored(tmp_path):
    path = write_history(tmp_path, ".bash_history", ["#12", "ls"])
    (command,) = ingest_file(path, now=NOW)
    assert command.synthetic
    assert command.ordering_key == NOW


def test_undecodable_bytes_survive_as_surrogates(tmp_path):
    path = tmp_path / ".bash_history"
    path.write_bytes(b"ls\n\xff\xfe junk\n")
    commands = ingest_file(path, now=NOW)
    assert commands[0].text == "ls"
    assert "\udcff" in commands[1].text


def test_read_error_keeps_lines_read_so_far(tmp_path, monkeypatch, caplog):
    path = write_history(tmp_path, ".bash_history", ["ls", "pwd", "make"])

    class FailingFile:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def __iter__(self):
            yield "ls\n"
            raise OSError("device went away")

    monkeypatch.setattr(Path, "open", lambda self, *a, **kw: FailingFile())
    with caplog.at_level(logging.WARNING, logger="histnav"):
        assert read_tail(path, 100) == ["ls\n"]
    assert any("device went away" in r.getMessage() for r in caplog.records)


def test_parse_lines_generator():
    commands = list(parse_lines(["a", "b"], Dialect.PLAIN, 100.0))
    assert [(c.text, c.ordering_key) for c in commands] == [("a", 99.0), ("b", 100.0)]


def test_multiline_zsh_entry_is_one_command(tmp_path):
    path = write_history(
        tmp_path,
        ".zsh_history",
        [": 1600000000:0;for i in 1 2\\", "do echo $i\\", "done", ": 1600000010:0;git push"],
    )
    commands = ingest_file(path, now=NOW)
    assert [(c.text, c.ordering_key, c.synthetic) for c in commands] == [
        ("for i in 1 2\ndo echo $i\ndone", 1600000000.0, False),
        ("git push", 1600000010.0, False),
    ]


def test_multiline_entry_survives_aggregation(tmp_path):
    path = write_history(
        tmp_path,
        ".zsh_history",
        [": 1600000000:0;for i in 1 2\\", "do echo $i\\", "done", ": 1600000010:0;git push"],
    )
    result = Aggregator(max_age=None, now=NOW).aggregate(ingest_file(path, now=NOW))
    assert [c.text for c in result] == ["git push", "for i in 1 2\ndo echo $i\ndone"]


def test_undated_lines_rank_below_later_dated_lines(tmp_path):
    path = write_history(
        tmp_path,
        ".zsh_history",
        ["old plain one", "old plain two", ": 1600000000:0;git status", "newest plain"],
    )
    commands = ingest_file(path, now=NOW)
    keys = [c.ordering_key for c in commands]
    assert [c.text for c in commands] == ["old plain one", "old plain two", "git status", "newest plain"]
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)
    assert keys[1] < 1600000000.0
    assert keys[-1] == NOW
    assert commands[0].synthetic and commands[1].synthetic


def test_bash_lines_before_a_timestamp_comment_rank_below_it(tmp_path):
    path = write_history(tmp_path, ".bash_history", ["ls", "#1600000000", "make"])
    commands = ingest_file(path, now=NOW)
    assert [c.text for c in commands] == ["ls", "make"]
    assert commands[0].ordering_key < commands[1].ordering_key == 1600000000.0


def test_plain_dialect_keeps_trailing_backslashes(tmp_path):
    path = write_history(tmp_path, ".bash_history", ["echo a \\", "b"])
    assert [c.text for c in ingest_file(path, now=NOW)] == ["echo a \\", "b"]


def test_join_continuations():
    assert list(join_continuations(["a\\\n", "b\\\n", "c\n", "d\n"])) == ["a\nb\nc", "d"]
    assert list(join_continuations(["dangling\\\n"])) == ["dangling"]
