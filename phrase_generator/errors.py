"""Exception types shared by the phrase generator modules.

``InvalidArgument`` derives from :class:`ValueError` so callers that already
guard generation with ``except ValueError`` keep working, while code that
wants to distinguish configuration mistakes from other failures can catch the
narrower type.
"""

from typing import Optional

__all__ = ["InvalidArgument"]


class InvalidArgument(ValueError):
    """Raised when a root, scale kind, time signature or duration is unknown.

    ``field`` optionally names the user-facing input that was rejected so
    form handlers can highlight it.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field
