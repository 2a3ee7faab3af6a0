"""Image pipeline: validation, thumbnailing and compression for event images."""
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

from PIL import Image

from processor.errors import ImageProcessingError, ImageValidationError
from processor.models import ImageAttachment, ImageValidation, ProcessedImage

logger = logging.getLogger(__name__)


class ImagePipeline:
    """Derive upload-ready blobs from an event image."""

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
    ALLOWED_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/webp')

    THUMBNAIL_SIZE = (200, 150)
    THUMBNAIL_QUALITY = 70
    COMPRESSED_SIZE = (1200, 800)
    COMPRESSED_QUALITY = 80

    def validate(self, attachment: ImageAttachment) -> ImageValidation:
        """
        Check type and size before any processing is attempted.

        Args:
            attachment: Uploaded image

        Returns:
            ImageValidation with an error message when invalid
        """
        if attachment.content_type not in self.ALLOWED_TYPES:
            return ImageValidation(
                valid=False,
                error='Please select a valid image file (JPEG, PNG, or WebP)'
            )

        if attachment.size > self.MAX_FILE_SIZE:
            return ImageValidation(valid=False, error='Image size must be less than 10MB')

        return ImageValidation(valid=True)

    def thumbnail(self, attachment: ImageAttachment) -> bytes:
        """Resize to fit within 200x150 and re-encode at quality 0.7."""
        max_width, max_height = self.THUMBNAIL_SIZE
        return self.resize(attachment.data, max_width, max_height, self.THUMBNAIL_QUALITY)

    def compress(self, attachment: ImageAttachment) -> bytes:
        """Resize to fit within 1200x800 and re-encode at quality 0.8."""
        max_width, max_height = self.COMPRESSED_SIZE
        return self.resize(attachment.data, max_width, max_height, self.COMPRESSED_QUALITY)

    def process(self, attachment: ImageAttachment) -> ProcessedImage:
        """
        Validate the attachment and derive both blobs concurrently.

        Args:
            attachment: Uploaded image

        Returns:
            ProcessedImage holding the compressed image and the thumbnail

        Raises:
            ImageValidationError: If the type or size check fails
            ImageProcessingError: If either derivation fails
        """
        validation = self.validate(attachment)
        if not validation.valid:
            logger.warning(
                f"Rejected image '{attachment.filename}': {validation.error}",
                extra={'content_type': attachment.content_type, 'size': attachment.size}
            )
            raise ImageValidationError(validation.error)

        with ThreadPoolExecutor(max_workers=2) as executor:
            compressed_future = executor.submit(self.compress, attachment)
            thumbnail_future = executor.submit(self.thumbnail, attachment)

            try:
                compressed = compressed_future.result()
                thumbnail = thumbnail_future.result()
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                logger.error(
                    f"Failed to process image '{attachment.filename}': {e}",
                    exc_info=True
                )
                raise ImageProcessingError(f"Could not process image: {e}") from e

        logger.info(
            f"Processed image '{attachment.filename}'",
            extra={
                'original_bytes': attachment.size,
                'compressed_bytes': len(compressed),
                'thumbnail_bytes': len(thumbnail)
            }
        )
        return ProcessedImage(
            filename=attachment.filename,
            compressed=compressed,
            thumbnail=thumbnail
        )

    def resize(self, data: bytes, max_width: int, max_height: int, quality: int) -> bytes:
        """
        Resize image bytes preserving aspect ratio and encode as JPEG.

        Args:
            data: Source image bytes
            max_width: Maximum output width
            max_height: Maximum output height
            quality: JPEG quality (1-95)

        Returns:
            JPEG bytes
        """
        with Image.open(io.BytesIO(data)) as img:
            width, height = fit_dimensions(img.width, img.height, max_width, max_height)
            resized = img.convert('RGB')
            if (width, height) != resized.size:
                resized = resized.resize((width, height), Image.Resampling.LANCZOS)

            output = io.BytesIO()
            resized.save(output, format='JPEG', quality=quality)
            return output.getvalue()


def fit_dimensions(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Scale dimensions on the longer side; never upscale.

    A landscape image is scaled so its width hits max_width, anything else
    so its height hits max_height.
    """
    if width > height:
        if width > max_width:
            height = height * max_width / width
            width = max_width
    elif height > max_height:
        width = width * max_height / height
        height = max_height

    return max(1, round(width)), max(1, round(height))
