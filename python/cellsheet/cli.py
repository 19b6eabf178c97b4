"""Interactive shell around a single in-memory spreadsheet.

Each input line is either an assignment ``CELL = EXPR`` or one of the
commands listed in ``HELP``.
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from typing import Any, TextIO

from cellsheet.calc import EvalResult, Spreadsheet, SpreadsheetEngine

logger = logging.getLogger(__name__)

PROMPT = ">> "

HELP = """\
    CELL = EXPR       evaluate EXPR into CELL
    query CELL        formula and current value of CELL
    delete CELL       delete the formula in CELL
    copy DEST SRC     copy the formula in SRC to DEST
    dump              formulas in topological order
    clear             clear the spreadsheet
    load FILE         replay a JSON list of [cellId, expr] pairs
    help              this message
"""

_CELL_ID_RE = re.compile(r"^\$?[a-zA-Z]\$?\d+$", re.ASCII)


def _read_pairs(data: Any) -> list[tuple[str, str]]:
    """Validate a decoded dump: a JSON list of ``[cellId, expr]`` pairs."""
    if not isinstance(data, list):
        raise ValueError(f"expected a list of [cellId, expr] pairs, got {type(data).__name__}")
    pairs = []
    for item in data:
        if not isinstance(item, list) or len(item) != 2:
            raise ValueError(f"bad pair {item!r}: expected [cellId, expr]")
        pairs.append((str(item[0]), str(item[1])))
    return pairs


class Shell:
    """Line-oriented command interpreter over a SpreadsheetEngine."""

    def __init__(self, spreadsheet: SpreadsheetEngine, out: TextIO, err: TextIO) -> None:
        self.spreadsheet = spreadsheet
        self.out = out
        self.err = err
        self._commands: dict[str, tuple[int, Any]] = {
            "query": (1, self._query),
            "delete": (1, self._delete),
            "copy": (2, self._copy),
            "dump": (0, self._dump),
            "clear": (0, self._clear),
            "load": (1, self.load_file),
            "help": (0, self._help),
        }

    def execute(self, line: str) -> bool:
        """Run one input line. Returns False if it reported an error."""
        line = line.strip()
        if not line:
            return True
        if "=" in line:
            return self._assign(line)
        name, *args = line.split()
        entry = self._commands.get(name.lower())
        if entry is None:
            return self._error(
                f"invalid command {name}: must be one of {'|'.join(self._commands)}"
            )
        n_args, handler = entry
        if len(args) != n_args:
            return self._error(f"command {name} needs {n_args} argument(s)")
        return handler(*args)

    def _assign(self, line: str) -> bool:
        splits = line.split("=")
        if len(splits) != 2:
            return self._error('input must be of type "cellId = expr"')
        cell_id, expr = splits[0].strip(), splits[1]
        if "$" in cell_id:
            return self._error("cellId being assigned to cannot contain absolute refs")
        return self._report(self.spreadsheet.eval(cell_id, expr))

    def _query(self, cell_id: str) -> bool:
        if not self._check_cell_id(cell_id):
            return False
        q = self.spreadsheet.query(cell_id)
        self._emit({"value": q.value, "expr": q.expr})
        return True

    def _delete(self, cell_id: str) -> bool:
        if not self._check_cell_id(cell_id):
            return False
        return self._report(self.spreadsheet.remove(cell_id))

    def _copy(self, dest: str, src: str) -> bool:
        if not (self._check_cell_id(dest) and self._check_cell_id(src)):
            return False
        return self._report(self.spreadsheet.copy(dest, src))

    def _dump(self) -> bool:
        self._emit([list(pair) for pair in self.spreadsheet.dump()])
        return True

    def _clear(self) -> bool:
        self.spreadsheet.clear()
        return True

    def load_file(self, path: str) -> bool:
        try:
            with open(path, encoding="utf-8") as f:
                pairs = _read_pairs(json.load(f))
        except (OSError, ValueError) as e:
            return self._error(f"cannot load {path}: {e}")
        logger.info("Loading %d cell(s) from %s", len(pairs), path)
        return self._report(self.spreadsheet.load(pairs))

    def _help(self) -> bool:
        self.out.write(HELP)
        return True

    def _check_cell_id(self, cell_id: str) -> bool:
        if _CELL_ID_RE.match(cell_id):
            return True
        return self._error(f"invalid value '{cell_id}'; must be a cell reference")

    def _report(self, result: EvalResult) -> bool:
        if not result.ok:
            return self._error(str(result.error))
        self._emit(dict(sorted(result.updates.items())))
        return True

    def _emit(self, payload: Any) -> None:
        self.out.write(json.dumps(payload) + "\n")

    def _error(self, message: str) -> bool:
        self.err.write(message + "\n")
        return False


def repl(shell: Shell, stdin: TextIO, interactive: bool) -> int:
    """Feed lines from *stdin* to *shell*; return the number of failed lines."""
    failures = 0
    if interactive:
        shell.out.write(PROMPT)
        shell.out.flush()
    for line in stdin:
        if not shell.execute(line):
            failures += 1
        if interactive:
            shell.out.write(PROMPT)
            shell.out.flush()
    return failures


def main(
    argv: list[str] | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    parser = argparse.ArgumentParser(
        prog="cellsheet",
        description="Interactive spreadsheet formula shell",
    )
    parser.add_argument("--name", default="default", help="Spreadsheet name")
    parser.add_argument("--load", metavar="FILE", help="JSON dump to load before the shell starts")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=stderr or sys.stderr,
    )

    stdin = stdin or sys.stdin
    shell = Shell(Spreadsheet(args.name), stdout or sys.stdout, stderr or sys.stderr)
    if args.load and not shell.load_file(args.load):
        return 1
    failures = repl(shell, stdin, interactive=stdin.isatty())
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
