"""
chainlab - Main Entry Point

Interactive console for the ledger:  chainlab --difficulty 3

Commands:
  mine <data>           mine a block carrying <data>
  validate              validate the whole chain
  tamper <index> <data> rewrite a block's data without re-mining
  difficulty <n>        set difficulty (1-5, empty chain only)
  show                  print the chain
  reset                 discard every block
  help / quit
"""

import argparse
import logging
import shlex
import sys
from typing import List, Optional

from .blockchain import (
    ChainLockedError,
    ChainValidator,
    EmptyDataError,
    Ledger,
    LedgerError,
    MiningAbortedError,
    TamperSimulator,
)
from .config import (
    DEFAULT_DIFFICULTY,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    PROGRESS_INTERVAL,
    LedgerConfig,
)
from .integration import ChainEvent, EventType

logger = logging.getLogger("chainlab")


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Hash-chained ledger with proof of work")
    p.add_argument("--difficulty", type=int, default=DEFAULT_DIFFICULTY,
                   help=f"leading zero hex chars ({MIN_DIFFICULTY}-{MAX_DIFFICULTY})")
    p.add_argument("--progress-interval", type=int, default=PROGRESS_INTERVAL,
                   help="nonces between progress updates")
    p.add_argument("--max-attempts", type=int, default=None,
                   help="give up mining after this many nonces")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="log every event, including mining progress")
    return p.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    """Attach a single console handler to the chainlab logger."""
    root = logging.getLogger("chainlab")
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not root.handlers:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(name)s  %(message)s"))
        root.addHandler(ch)
    root.propagate = False


class Console:
    """Reads commands, drives the ledger and renders its events."""

    def __init__(self, ledger: Ledger, out=None):
        self.ledger = ledger
        self.validator = ChainValidator()
        self.tamperer = TamperSimulator()
        self.out = out or sys.stdout
        ledger.events.add_callback(self._on_event)

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def _on_event(self, event: ChainEvent) -> None:
        if event.event_type is EventType.MINING_PROGRESS:
            print(f"\r  Attempts: {event.details['progress']:,}",
                  end="", file=self.out, flush=True)
            return
        if event.event_type in (EventType.BLOCK_MINED, EventType.MINING_FAILED):
            self._print()
        if event.message:
            self._print(event.message)

    # -- commands -------------------------------------------------------------

    def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the user wants to quit."""
        try:
            parts = shlex.split(line)
        except ValueError as exc:
            self._print(f"Parse error: {exc}")
            return True
        if not parts:
            return True

        cmd, args = parts[0].lower(), parts[1:]
        try:
            if cmd in ("quit", "exit", "q"):
                return False
            elif cmd == "mine":
                self.ledger.mine_and_append(" ".join(args))
            elif cmd == "validate":
                self.validator.validate(self.ledger)
            elif cmd == "tamper":
                if len(args) < 2:
                    self._print("Usage: tamper <index> <data>")
                else:
                    self.tamperer.tamper(self.ledger, self._parse_index(args[0]),
                                         " ".join(args[1:]))
            elif cmd == "difficulty":
                if not args:
                    self._print(f"Difficulty: {self.ledger.difficulty}")
                else:
                    self.ledger.set_difficulty(args[0])
            elif cmd == "show":
                self.ledger.print_chain()
            elif cmd == "reset":
                self.ledger.reset()
            elif cmd == "help":
                self._print(__doc__.split("Commands:", 1)[1].rstrip())
            else:
                self._print(f"Unknown command: {cmd} (try 'help')")
        except (EmptyDataError, ChainLockedError, MiningAbortedError) as exc:
            # already reported through the event logger
            logger.debug("command %r failed: %s", cmd, exc)
        except LedgerError as exc:
            logger.debug("command %r failed: %s", cmd, exc)
            self._print(f"Error: {exc}")
        except KeyboardInterrupt:
            self._print("\nMining interrupted; nothing was appended.")
        return True

    @staticmethod
    def _parse_index(text: str) -> int:
        try:
            return int(text)
        except ValueError:
            return -1

    def run(self, lines=None) -> None:
        source = lines if lines is not None else self._prompt()
        for line in source:
            if not self.handle(line):
                break

    def _prompt(self):
        while True:
            try:
                yield input(f"chainlab[{self.ledger.length}]> ")
            except EOFError:
                return


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for chainlab."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    config = LedgerConfig(
        difficulty=args.difficulty,
        progress_interval=args.progress_interval,
        max_attempts=args.max_attempts,
    )
    ledger = Ledger(config=config)

    print("=" * 50)
    print("chainlab - SHA-256 + Proof of Work")
    print("=" * 50)
    print(f"Difficulty: {ledger.difficulty} ({'0' * ledger.difficulty})")
    print("Type 'help' for commands.\n")

    try:
        Console(ledger).run()
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
