"""HTTP push relay: swaps source/subject attributes and republishes."""

__version__ = "0.1.0"
