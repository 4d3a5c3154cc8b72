"""MindDump - Capture free-form thoughts, categorize them, and route them onward"""

from __future__ import annotations

__version__ = "2.0.0"


# Lazy imports so lightweight modules don't pull in the Google/Gemini SDKs
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name in ("Category", "get_category"):
        from minddump.thoughts import taxonomy

        if name == "Category":
            return taxonomy.Category
        if name == "get_category":
            return taxonomy.get_category

    if name == "ThoughtPipeline":
        from minddump.thoughts.service import ThoughtPipeline

        return ThoughtPipeline

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Category",
    "ThoughtPipeline",
    "get_category",
]
