"""Protocol definitions for dependency injection and testability."""

from pathlib import Path
from typing import Any, List, Protocol, Union

from .models import TransformProfile, VariantResult


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class TransformerProtocol(Protocol):
    """Callable turning one source image into its profile's variants."""

    def __call__(
        self, input_path: Union[str, Path], profile: TransformProfile
    ) -> List[VariantResult]:
        ...
