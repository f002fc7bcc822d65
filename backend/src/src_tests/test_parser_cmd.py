import pytest

from parser_cmd import (CommandParser, CommandParserError, InsertCommand, LookupCommand,
                        RemoveCommand, SnapshotCommand, SnapshotOp, tokenize)


def parse_all(text):
    p = CommandParser(tokenize(text.splitlines(keepends=True)))
    out = []
    while True:
        cmd = p.parse_next()
        if cmd is None:
            return out
        out.append(cmd)


def test_tokenize_spans_lines():
    assert list(tokenize(["+ a\n", "  1\n", "\n", "b"])) == ["+", "a", "1", "b"]


def test_parses_every_command_kind():
    cmds = parse_all("+ Word 5\n- word\n! Save out.bin\n! Load out.bin\nword\n")
    assert cmds == [
        InsertCommand(key="Word", value=5),
        RemoveCommand(key="word"),
        SnapshotCommand(op=SnapshotOp.SAVE, path="out.bin"),
        SnapshotCommand(op=SnapshotOp.LOAD, path="out.bin"),
        LookupCommand(key="word"),
    ]


def test_command_may_wrap_across_lines():
    assert parse_all("+\nkey\n18446744073709551615") == [
        InsertCommand(key="key", value=2**64 - 1)]


@pytest.mark.parametrize("text", ["+ key", "+", "-", "! Save", "!"])
def test_truncated_command_is_dropped(text):
    assert parse_all(text) == []


@pytest.mark.parametrize("value", ["abc", "-1", "1.5", "18446744073709551616", "²"])
def test_bad_value_raises(value):
    p = CommandParser(["+", "k", value, "k"])
    with pytest.raises(CommandParserError):
        p.parse_next()
    # the parser keeps going after the bad command
    assert p.parse_next() == LookupCommand(key="k")


def test_unknown_snapshot_op():
    p = CommandParser(["!", "Dump", "x.bin"])
    with pytest.raises(CommandParserError, match="unknown operation"):
        p.parse_next()
    assert p.parse_next() is None
