"""Hex and difficulty helpers, fixed-size hashes, logging, workers and a JSON-RPC/HTTP monitoring API for mining nodes."""

__version__ = "0.1.0"
__all__ = ["commondata", "fixedhash", "log", "worker", "stats", "rpc", "server"]