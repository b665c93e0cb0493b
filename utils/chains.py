from enum import Enum


class Chain(Enum):
    MAINNET = (1, "mainnet")
    OPTIMISM = (10, "optimism")
    POLYGON = (137, "polygon")
    BASE = (8453, "base")
    ARBITRUM = (42161, "arbitrum")

    def __init__(self, chain_id: int, network_name: str):
        self.chain_id = chain_id
        self.network_name = network_name

    @classmethod
    def from_name(cls, name: str) -> "Chain":
        name = name.lower()
        for chain in cls:
            if chain.network_name == name:
                return chain
        raise ValueError(f"Unknown chain name: {name}")


EXPLORER_URLS = {
    Chain.MAINNET: "https://etherscan.io",
    Chain.OPTIMISM: "https://optimistic.etherscan.io",
    Chain.POLYGON: "https://polygonscan.com",
    Chain.BASE: "https://basescan.org",
    Chain.ARBITRUM: "https://arbiscan.io",
}
