"""pomforest - reconstructs Maven multi-module hierarchies and their dependency trees."""

__version__ = "1.0.0"
