"""
reforge

Foundry front-end for contract deployment workflows. Resolves compiled
artifacts and build infos, connects to the RPC endpoint, and hands off to a
task engine.
"""

__version__ = "0.1.0"
