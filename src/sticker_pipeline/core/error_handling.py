# src/sticker_pipeline/core/error_handling.py

import functools
import logging

from PIL import Image, UnidentifiedImageError

from .exceptions import StickerPipelineError, TransformError


def with_error_handling(func):
    """
    A decorator to wrap functions with standardized error handling.

    Pipeline errors pass through untouched. Pillow decode failures are
    re-raised as TransformError so the optimize stage can isolate them.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except StickerPipelineError:
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            if isinstance(e, (UnidentifiedImageError, Image.DecompressionBombError)):
                raise TransformError(f"Failed to decode image in {func.__name__}: {e}") from e
            if isinstance(e, (OSError, SyntaxError)) and func.__module__.endswith('transformer'):
                raise TransformError(f"Image codec error in {func.__name__}: {e}") from e
            raise
    return wrapper


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """
    def __init__(self, operation_name="Batch Operation", logger=None):
        self.operation_name = operation_name
        self.errors = []
        self.succeeded = 0
        self.logger = logger or logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                item_identifier = error_detail.get('item', 'Unknown item')
                error_message = error_detail.get('error', 'Unknown error')
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item '{item_identifier}': {error_message}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        self.logger.info(f"Done. OK={self.succeeded} FAILED={self.failed}")
        return False

    @property
    def failed(self) -> int:
        return len(self.errors)

    def add_success(self, item_identifier: str = "Unknown item"):
        """Record one item that completed without error."""
        self.succeeded += 1
        self.logger.debug(f"Item '{item_identifier}' succeeded in {self.operation_name}")

    def add_error(self, error_message, item_identifier: str = "Unknown item"):
        """
        Call this method within the 'with' block to report an error for a specific item.

        Args:
            error_message: The error message or exception.
            item_identifier (str): A string identifying the item that failed (e.g., file, pack).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")
