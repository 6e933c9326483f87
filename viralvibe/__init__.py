"""ViralVibe - image + topic to narrated, subtitled short-form video."""

__version__ = "1.0.0"
