"""Exception root for the knowledge search packages.

Every error raised by the stores, the embedding providers and the engine
derives from ``KnowledgeSearchError``. Errors carry a ``context`` dict so the
engine can annotate them with the operation and the record key or query that
was being served, without changing the exception type callers match on.
"""

from typing import Any, Dict, Optional


class KnowledgeSearchError(Exception):
    """Base exception for all knowledge search errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def annotate(self, **context: Any) -> "KnowledgeSearchError":
        """Add context without overwriting keys set closer to the failure."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Return error as a JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value!r}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(KnowledgeSearchError):
    """Unknown backend or provider requested by configuration."""
    pass
