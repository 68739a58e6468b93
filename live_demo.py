#!/usr/bin/env python
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                          CHAINLAB LIVE DEMO                                  ║
║                  Hash-chained ledger + Proof of Work                         ║
╚══════════════════════════════════════════════════════════════════════════════╝

This script walks through:
- Mining blocks with Proof of Work
- Validating the chain end-to-end
- Simulating an attack that rewrites one block
- Detecting the attack and the append lock that follows
- Resetting the chain

Run with --auto to skip the pauses.
"""

import sys
import threading

from chainlab.blockchain import (
    ChainLockedError,
    ChainValidator,
    Ledger,
    MiningCancelledError,
    TamperSimulator,
)
from chainlab.core_crypto.hasher import canonical_payload
from chainlab.integration import EventType

AUTO = "--auto" in sys.argv


def print_header(title):
    """Print a formatted section header"""
    print("\n" + "═" * 70)
    print(f"  {title}")
    print("═" * 70)


def print_step(step_num, description):
    """Print a numbered step"""
    print(f"\n  [{step_num}] {description}")


def pause(message="Press ENTER to continue..."):
    """Pause for presenter to explain"""
    if AUTO:
        return
    print(f"\n  [PAUSE] {message}")
    input()


def show_progress(event):
    if event.event_type is EventType.MINING_PROGRESS:
        print(f"\r  Attempts: {event.details['progress']:,}", end="", flush=True)
    elif event.event_type is EventType.BLOCK_MINED:
        print(f"\r  {event.message}" + " " * 20)


def main():

    print("\n" * 2)
    print("╔" + "═" * 68 + "╗")
    print("║" + " " * 68 + "║")
    print("║" + "CHAINLAB - TAMPER-EVIDENT LEDGER".center(68) + "║")
    print("║" + " " * 68 + "║")
    print("╚" + "═" * 68 + "╝")

    pause("Press ENTER to begin the demonstration...")

    print_header("PART 1: MINING")

    ledger = Ledger(difficulty=3)
    ledger.events.add_callback(show_progress)
    validator = ChainValidator()
    tamperer = TamperSimulator()

    print_step("1.1", f"Difficulty {ledger.difficulty}: hashes must start with "
                      f"'{'0' * ledger.difficulty}'")

    for data in ["Alice pays Bob 10", "Bob pays Carol 4", "Carol pays Dave 1"]:
        print(f"\n  Mining: '{data}'")
        block = ledger.mine_and_append(data)
        print(f"  Nonce: {block.nonce:,}")
        print(f"  Hash:  {block.hash}")

    pause()

    print_step("1.2", "What actually gets hashed (block 1)")
    b = ledger[1]
    print(f"  {canonical_payload(b.index, b.timestamp, b.data, b.previous_hash, b.nonce).decode()}")

    pause()

    print_step("1.3", "Cancelling a search leaves the chain untouched")
    stop = threading.Event()
    stop.set()
    try:
        ledger.mine_and_append("never appended", cancel=stop)
    except MiningCancelledError as exc:
        print(f"  [OK] {exc}; chain length still {ledger.length}")

    print_header("PART 2: VALIDATION")

    result = validator.validate(ledger)
    print(f"\n  [OK] Valid: {result.is_valid}")
    print(f"  Defects: {len(result.defects)}")
    ledger.print_chain()

    pause()

    print_header("PART 3: ATTACK SIMULATION")

    print_step("3.1", "Rewriting block 1 without re-mining")
    compromised = tamperer.tamper(ledger, 1, "Bob pays Carol 4000")
    print(f"  {compromised} block(s) compromised")
    print(f"  Chain valid flag: {ledger.chain_valid}")

    print_step("3.2", "Validating again")
    result = validator.validate(ledger)
    print(f"\n  [X] Valid: {result.is_valid}")
    for defect in result.defects:
        print(f"    - {defect}")

    print_step("3.3", "Trying to mine on top of the attacked chain")
    try:
        ledger.mine_and_append("Dave pays Eve 2")
    except ChainLockedError as exc:
        print(f"  [X] Refused: {exc}")

    ledger.print_chain()

    pause()

    print_header("PART 4: RESET")

    ledger.reset()
    print(f"\n  Length: {ledger.length}, valid: {ledger.chain_valid}")
    ledger.mine_and_append("Fresh start")
    print(f"  [OK] Valid after new block: {validator.validate(ledger).is_valid}")

    print_header("EVENT LOG")
    ledger.events.print_history(last_n=12)


if __name__ == "__main__":
    main()
