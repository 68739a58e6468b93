# chainlab
"""
Hash-chained ledger secured by proof of work.

Mine blocks, validate the chain end-to-end, and simulate a tampering attack
that breaks the chain's linkage.

Modules:
  - core_crypto: block hashing
  - blockchain:  ledger, proof of work, validation, tamper simulation
  - integration: event logger (mining progress and status messages)
"""

__version__ = "0.1.0"
