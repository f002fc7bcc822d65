from typing import Iterable, Optional, TextIO
import logging

from parser_cmd import (CommandParser, CommandParserError, Command, InsertCommand, RemoveCommand,
                        LookupCommand, SnapshotCommand, SnapshotOp, tokenize)
from index.avl import AVLTree, Outcome
from index.codec import StoreError

logger = logging.getLogger(__name__)


class Engine:
    def __init__(self, tree: Optional[AVLTree] = None):
        self.tree = tree if tree is not None else AVLTree()

    def execute(self, cmd: Command) -> str:
        """Run one command and return its status line."""
        if isinstance(cmd, InsertCommand):
            return self._exec_insert(cmd)
        elif isinstance(cmd, RemoveCommand):
            return self.tree.remove(cmd.key).value
        elif isinstance(cmd, LookupCommand):
            value = self.tree.lookup(cmd.key)
            return Outcome.NOT_FOUND.value if value is None else f"OK: {value}"
        elif isinstance(cmd, SnapshotCommand):
            return self._exec_snapshot(cmd)
        else:
            raise ValueError(f"Unsupported command: {cmd!r}")

    def _exec_insert(self, cmd: InsertCommand) -> str:
        try:
            return self.tree.insert(cmd.key, cmd.value).value
        except ValueError as e:
            return f"ERROR: {e}"

    def _exec_snapshot(self, cmd: SnapshotCommand) -> str:
        try:
            if cmd.op is SnapshotOp.SAVE:
                self.tree.save(cmd.path)
            else:
                self.tree.load(cmd.path)
        except StoreError as e:
            logger.info("%s %s failed: %s", cmd.op.value, cmd.path, e)
            return f"ERROR: {e}"
        return Outcome.OK.value

    def run(self, lines: Iterable[str], out: TextIO) -> int:
        """Execute every command in ``lines``, one status line each. Returns commands run."""
        parser = CommandParser(tokenize(lines))
        executed = 0
        while True:
            try:
                cmd = parser.parse_next()
            except CommandParserError as e:
                out.write(f"ERROR: {e}\n"); out.flush()
                continue
            if cmd is None:
                break
            out.write(self.execute(cmd) + "\n"); out.flush()
            executed += 1
        return executed
