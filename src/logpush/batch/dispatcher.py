"""
Fan input files out to a fixed pool of upload workers.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable

from logpush.core.errors import ConfigError
from logpush.core.models import UploadResult
from logpush.observability.logger import get_logger

from .uploader import FileUploader

logger = get_logger(__name__)


def upload_files(
    filenames: Iterable[str],
    uploader_factory: Callable[[str], FileUploader],
    workers: int = 1,
) -> list[UploadResult]:
    """
    Upload every file with at most `workers` files in flight.

    Each worker takes one filename, drives it to completion, then takes
    the next. A failing file never stops the others.

    Args:
        filenames: Input files; each is processed exactly once
        uploader_factory: filename -> FileUploader
        workers: Number of worker threads (>= 1)

    Returns:
        One UploadResult per filename, in completion order

    Raises:
        ConfigError: If workers < 1
    """
    if workers < 1:
        raise ConfigError(f"parallel must be at least 1, got {workers}")

    filenames = list(filenames)
    results: list[UploadResult] = []

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="uploader") as executor:
        futures = {
            executor.submit(_upload_one, uploader_factory, filename): filename
            for filename in filenames
        }

        for future in as_completed(futures):
            filename = futures[future]
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"Error uploading '{filename}': {e}", exc_info=True)
                results.append(UploadResult(filename=filename, status="failed", error=str(e) or type(e).__name__))

    failed = sum(1 for result in results if not result.succeeded)
    logger.info(f"Processed {len(results)} file(s), {failed} with errors")
    return results


def _upload_one(uploader_factory: Callable[[str], FileUploader], filename: str) -> UploadResult:
    return uploader_factory(filename).run()
