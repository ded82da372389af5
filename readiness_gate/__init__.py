"""Keep nodes tainted until their per-node agents are ready."""

__version__ = "0.1.0"
