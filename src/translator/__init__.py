"""Translation assistant: streamed, source-aligned hints for human translators."""

__version__ = "0.1.0"
