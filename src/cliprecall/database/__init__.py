from .preferences import JsonPreferenceStore, PreferenceStore

__all__ = ["JsonPreferenceStore", "PreferenceStore"]
