"""Arena Engine - oracle-resolved prediction arenas: staking, odds, resolution and settlement."""

__version__ = "0.1.0"
