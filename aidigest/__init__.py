"""AI Discovery Digest: trending AI newsletter generation and delivery."""

__version__ = "0.1.0"
