from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence, Union
from pathlib import Path
import time

from .config import RunOptions
from .pipeline import OCRPipeline
from .types import OCRResult
from .utils.images import ImageInput
from .utils.logging import setup_logger

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.tif', '.webp'}


class BatchProcessor:
    """Run one pipeline over many images on a thread pool"""

    def __init__(self, pipeline: OCRPipeline, max_workers: int = 4):
        self.pipeline = pipeline
        self.max_workers = max_workers
        self.logger = setup_logger(self.__class__.__name__)

    def process_directory(self,
                          directory: Union[str, Path],
                          options: Optional[RunOptions] = None,
                          pattern: str = "*",
                          recursive: bool = False,
                          progress_callback: Optional[Callable[[int, int], None]] = None
                          ) -> List[OCRResult]:
        """
        Process all images in a directory

        Args:
            directory: Directory containing images
            options: Per-call overrides applied to every image
            pattern: File pattern to match (e.g., "*.jpg", "*")
            recursive: Search subdirectories
            progress_callback: Called with (completed, total)

        Returns:
            List of OCRResult objects, sorted by file path
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ValueError(f"Directory does not exist: {directory}")

        candidates = directory.rglob(pattern) if recursive else directory.glob(pattern)
        image_files = sorted(f for f in candidates if f.suffix.lower() in IMAGE_EXTENSIONS)

        if not image_files:
            self.logger.warning(f"No image files found in {directory}")
            return []

        return self.process_images(image_files, options, progress_callback)

    def process_images(self,
                       images: Sequence[ImageInput],
                       options: Optional[RunOptions] = None,
                       progress_callback: Optional[Callable[[int, int], None]] = None
                       ) -> List[OCRResult]:
        """
        Process images in parallel

        A failing image yields an empty result whose metadata carries the error.

        Returns:
            List of OCRResult objects in same order as input
        """
        total = len(images)
        results: List[Optional[OCRResult]] = [None] * total
        completed = 0

        start_time = time.time()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self.pipeline.run, image, options): i
                for i, image in enumerate(images)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    results[index] = self._create_error_result(images[index], e)
                    self.logger.error(f"Failed to process image {self._describe(images[index])}: {e}")

                completed += 1
                if progress_callback:
                    progress_callback(completed, total)

        processing_time = time.time() - start_time
        success_count = sum(1 for r in results if "error" not in r.metadata)
        self.logger.info(f"Batch processing completed: {success_count}/{total} successful "
                         f"in {processing_time:.2f}s")

        return results

    @staticmethod
    def _describe(image: ImageInput) -> str:
        if isinstance(image, (str, Path)):
            return str(image)
        return f"<{type(image).__name__}>"

    def _create_error_result(self, image: ImageInput, error: Exception) -> OCRResult:
        return OCRResult(metadata={
            'error': str(error),
            'error_type': type(error).__name__,
            'source': self._describe(image),
        })


__all__ = ["BatchProcessor"]
