# tests/core/test_error_handling.py

import io
import logging
from unittest import mock

import pytest
from PIL import Image, UnidentifiedImageError

from sticker_pipeline.core.exceptions import DuplicateKey, TransformError
from sticker_pipeline.core.error_handling import (
    with_error_handling,
    BatchOperationContextManager,
)


@pytest.fixture
def mock_logger():
    """Fixture to mock the logger used by the decorator."""
    with mock.patch('logging.getLogger') as mock_get_logger:
        mock_log_instance = mock.Mock()
        mock_get_logger.return_value = mock_log_instance
        yield mock_log_instance


def test_with_error_handling_logs_and_reraises_unknown_error(mock_logger):
    @with_error_handling
    def func_raising_error():
        raise KeyError("Original error")

    with pytest.raises(KeyError):
        func_raising_error()

    mock_logger.error.assert_called_once()
    args, kwargs = mock_logger.error.call_args
    assert kwargs.get('exc_info') is True


def test_with_error_handling_wraps_unidentified_image(mock_logger):
    @with_error_handling
    def open_garbage():
        Image.open(io.BytesIO(b"definitely not an image"))

    with pytest.raises(TransformError) as excinfo:
        open_garbage()

    assert "Failed to decode image" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, UnidentifiedImageError)


def test_with_error_handling_passes_pipeline_errors_untouched(mock_logger):
    @with_error_handling
    def duplicate():
        raise DuplicateKey("stickerId", "cat")

    with pytest.raises(DuplicateKey):
        duplicate()
    mock_logger.error.assert_not_called()


def test_with_error_handling_returns_value():
    @with_error_handling
    def ok():
        return 42

    assert ok() == 42


class TestBatchOperationContextManager:
    def test_counts_successes_and_errors(self):
        logger = mock.Mock(spec=logging.Logger)
        with BatchOperationContextManager("optimize", logger=logger) as batch:
            batch.add_success("a.png")
            batch.add_error(ValueError("bad pixels"), "b.png")
            batch.add_success("c.png")

        assert batch.succeeded == 2
        assert batch.failed == 1
        assert batch.errors == [{"item": "b.png", "error": "bad pixels"}]
        logger.warning.assert_called_once()
        logger.info.assert_any_call("Done. OK=2 FAILED=1")

    def test_clean_run_logs_success(self):
        logger = mock.Mock(spec=logging.Logger)
        with BatchOperationContextManager("manifest", logger=logger) as batch:
            batch.add_success("pack.source.json")

        logger.info.assert_any_call("manifest completed successfully.")
        logger.warning.assert_not_called()

    def test_unhandled_exception_propagates(self):
        logger = mock.Mock(spec=logging.Logger)
        with pytest.raises(RuntimeError):
            with BatchOperationContextManager("optimize", logger=logger):
                raise RuntimeError("boom")
        logger.error.assert_called_once()
