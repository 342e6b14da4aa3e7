"""Provider adapters, keyed by MarketOracle.provider."""

from arenaengine.oracle.providers.chainlink import ChainlinkAdapter
from arenaengine.oracle.providers.pyth import PythAdapter
from arenaengine.oracle.providers.switchboard import SwitchboardAdapter

ADAPTERS = {
    PythAdapter.provider: PythAdapter,
    ChainlinkAdapter.provider: ChainlinkAdapter,
    SwitchboardAdapter.provider: SwitchboardAdapter,
}

__all__ = ["ADAPTERS", "ChainlinkAdapter", "PythAdapter", "SwitchboardAdapter"]
