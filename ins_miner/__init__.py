"""
Starknet inscription fee miner.

Searches for a `max_fee` whose invoke transaction hash falls inside the
inscription contract's prefix window, racing several worker threads, and
submits the winning transaction once. `InscriptionMiner` is the entry point
used by the CLI.
"""

from .miner import InscriptionMiner

__all__ = ["InscriptionMiner"]
