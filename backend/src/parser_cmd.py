from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from index.codec import MAX_VALUE


class SnapshotOp(Enum):
    SAVE = "Save"
    LOAD = "Load"


class InsertCommand(BaseModel):
    key: str = Field(..., min_length=1)
    value: int = Field(..., ge=0, le=MAX_VALUE, description="Unsigned 64-bit payload")

class RemoveCommand(BaseModel):
    key: str = Field(..., min_length=1)

class LookupCommand(BaseModel):
    key: str = Field(..., min_length=1)

class SnapshotCommand(BaseModel):
    op: SnapshotOp
    path: str = Field(..., min_length=1)


Command = Union[InsertCommand, RemoveCommand, LookupCommand, SnapshotCommand]


class CommandParserError(Exception):
    pass


def tokenize(lines: Iterable[str]) -> Iterator[str]:
    """Split a stream of lines into whitespace separated tokens, lazily."""
    for line in lines:
        yield from line.split()


class CommandParser:
    """Pulls one command at a time off a token stream.

        + <word> <value>      insert
        - <word>              remove
        ! Save|Load <path>    snapshot
        <word>                lookup

    A command cut short by the end of input is dropped.
    """

    def __init__(self, tokens: Iterable[str]):
        self._tokens = iter(tokens)

    def _consume_token(self) -> Optional[str]:
        return next(self._tokens, None)

    def parse_next(self) -> Optional[Command]:
        """Return the next command, or None once the input is exhausted."""
        tok = self._consume_token()
        if tok is None:
            return None
        if tok == "+":
            return self._parse_insert()
        elif tok == "-":
            key = self._consume_token()
            return None if key is None else RemoveCommand(key=key)
        elif tok == "!":
            return self._parse_snapshot()
        else:
            return LookupCommand(key=tok)

    def _parse_insert(self) -> Optional[InsertCommand]:
        key = self._consume_token()
        value = self._consume_token()
        if key is None or value is None:
            return None
        if not (value.isascii() and value.isdigit()):
            raise CommandParserError(f"value must be an unsigned integer, got '{value}'")
        try:
            return InsertCommand(key=key, value=int(value))
        except ValidationError as e:
            raise CommandParserError(f"invalid value '{value}': {e.errors()[0]['msg']}") from e

    def _parse_snapshot(self) -> Optional[SnapshotCommand]:
        op = self._consume_token()
        path = self._consume_token()
        if op is None or path is None:
            return None
        try:
            return SnapshotCommand(op=SnapshotOp(op), path=path)
        except ValueError as e:
            raise CommandParserError("unknown operation") from e
