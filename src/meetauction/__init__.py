"""Meeting auction backend: auction completion orchestrator and NFT-gated meeting access."""

__version__ = "0.1.0"
