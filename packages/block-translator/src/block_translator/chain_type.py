"""Chain type tags understood by the block translator factory."""

from enum import Enum


class ChainType(str, Enum):
    """Known chain-type tags as supplied by node configuration.

    The empty tag means "unset" and is treated like a plain L1 chain.
    """

    UNSET = ""
    ARBITRUM = "arbitrum"
    CELO = "celo"
    GNOSIS = "gnosis"
    KROMA = "kroma"
    METIS = "metis"
    OPTIMISM_BEDROCK = "optimismBedrock"
    SEI = "sei"
    SCROLL = "scroll"
    WEMIX = "wemix"
    XLAYER = "xlayer"
    ZKEVM = "zkevm"
    ZKSYNC = "zksync"
    ZIRCUIT = "zircuit"

    @classmethod
    def parse(cls, tag: "str | ChainType | None") -> "ChainType | None":
        """Parse a configuration tag into a ChainType.

        Matching ignores case and surrounding whitespace. ``None`` is the
        unset tag.

        Args:
            tag: Raw tag from configuration

        Returns:
            The matching ChainType, or None for an unrecognized tag
        """
        if isinstance(tag, ChainType):
            return tag
        if tag is None:
            return cls.UNSET

        normalized = tag.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None

    def __str__(self) -> str:
        return self.value
