"""ClipRecall: clipboard history with global-shortcut recall."""

__version__ = "0.1.0"
