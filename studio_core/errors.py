from __future__ import annotations


class ParseError(ValueError):
    """Raised by the parsing entry points when a report cannot be used.

    The message is meant to be shown to the user verbatim.
    """
