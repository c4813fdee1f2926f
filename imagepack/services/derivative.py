# imagepack/services/derivative.py
"""
Per-file derivative rendering.

Each upload is decoded once and rendered for every profile. The file is the
unit of failure: variants are only handed back when all profiles encoded, so
a failure in one profile never leaves a half-processed file in the archives.
"""
import re
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional

from PIL import Image, UnidentifiedImageError
from PIL.Image import DecompressionBombError

from imagepack.core.exceptions import ImageProcessingError
from imagepack.core.logging import get_logger
from imagepack.models.batch import (
    FileErrorReport,
    FileReport,
    FileSuccessReport,
    ProfileStats,
    UploadItem,
    Variant,
)
from imagepack.models.profile import EncodingPolicy, Profile

logger = get_logger(__name__)

_SOURCE_EXTENSION = re.compile(r"\.(jpg|jpeg|png)$", re.IGNORECASE)


def output_name(filename: str, extension: str = ".webp") -> str:
    """Rewrite a trailing .jpg/.jpeg/.png extension to the output extension"""
    return _SOURCE_EXTENSION.sub(extension, filename)


def reduction_ratio(new_size: int, original_size: int) -> float:
    """Percentage saved relative to the original size"""
    return (1 - new_size / original_size) * 100


def target_size(size: tuple, width: int) -> tuple:
    """Height that keeps the aspect ratio at the given width"""
    src_width, src_height = size
    height = max(1, round(src_height * width / src_width))
    return width, height


def to_eight_bit(image: Image.Image) -> Image.Image:
    """
    Scale high bit depth grayscale (I;16, I, F) down to 8-bit L

    16-bit samples are divided by 256. Wider integer and float data is
    stretched from its own min..max onto 0..255.
    """
    if image.mode.startswith("I;16"):
        image = image.convert("I")
    if image.mode not in ("I", "F"):
        return image

    low, high = image.getextrema()
    if image.mode == "I" and 0 <= low and high <= 65535:
        scale, offset = 1 / 256, 0.0
    elif high > low:
        scale = 255 / (high - low)
        offset = -low * scale
    else:
        scale, offset = 0.0, float(min(max(low, 0), 255))
    scaled = image.point(lambda v: v * scale + offset).convert("L")
    # tRNS values are in the source bit depth
    scaled.info.pop("transparency", None)
    return scaled


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes into a pixel buffer in a WebP-compatible mode"""
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except UnidentifiedImageError as e:
        raise ImageProcessingError("Input is not a decodable image") from e
    except DecompressionBombError as e:
        raise ImageProcessingError("Image is too large to process safely") from e
    except (OSError, SyntaxError, ValueError) as e:
        raise ImageProcessingError(f"Image data is corrupted: {e}") from e

    image = to_eight_bit(image)
    if image.mode in ("RGB", "RGBA"):
        return image
    has_alpha = "A" in image.getbands() or "transparency" in image.info
    return image.convert("RGBA" if has_alpha else "RGB")


def render_variant(image: Image.Image, width: int, policy: EncodingPolicy) -> bytes:
    """
    Resize an image to a target width and encode it

    Args:
        image: Decoded source image
        width: Target width in pixels, height follows the aspect ratio
        policy: Encoder settings

    Returns:
        Encoded image bytes
    """
    resized = image.resize(target_size(image.size, width), Image.Resampling.LANCZOS)
    buffer = BytesIO()
    try:
        resized.save(buffer, **policy.save_options())
    except (OSError, ValueError) as e:
        raise ImageProcessingError(f"Could not encode image: {e}") from e
    return buffer.getvalue()


@dataclass
class ItemOutcome:
    """Report for one upload plus the variants it contributed"""
    report: FileReport
    variants: List[Variant] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return isinstance(self.report, FileSuccessReport)


class DerivativePipeline:
    """Renders the desktop and mobile variants of single uploads"""

    def __init__(
        self,
        widths: Dict[Profile, int],
        policy: Optional[EncodingPolicy] = None,
        max_file_size: Optional[int] = None,
    ):
        self.widths = widths
        self.policy = policy or EncodingPolicy()
        self.max_file_size = max_file_size

    def process(self, item: UploadItem) -> ItemOutcome:
        """
        Render every profile for one upload

        Never raises for image problems; failures come back as an error
        report with no variants.
        """
        if self.max_file_size is not None and item.size > self.max_file_size:
            logger.warning(f"Rejecting {item.name}: {item.size} bytes exceeds limit")
            return ItemOutcome(
                report=FileErrorReport(
                    name=item.name,
                    error=f"File exceeds the maximum size of {self.max_file_size} bytes",
                )
            )

        start_time = time.perf_counter()
        try:
            image = decode_image(item.data)
            encoded = {
                profile: render_variant(image, width, self.policy)
                for profile, width in self.widths.items()
            }
        except ImageProcessingError as e:
            logger.error(f"Error processing {item.name}: {e.message}")
            return ItemOutcome(report=FileErrorReport(name=item.name, error=e.message))
        except Exception as e:
            logger.exception(f"Unexpected error processing {item.name}: {e}")
            return ItemOutcome(report=FileErrorReport(name=item.name, error=str(e) or type(e).__name__))

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        name = output_name(item.name, self.policy.extension)

        stats = {
            profile: ProfileStats(
                size=len(data),
                ratio=f"{reduction_ratio(len(data), item.size):.2f}",
                time=f"{elapsed_ms:.2f}",
            )
            for profile, data in encoded.items()
        }
        variants = [Variant(profile=profile, name=name, data=data) for profile, data in encoded.items()]

        logger.info(
            f"Processed {item.name} in {elapsed_ms:.2f}ms: "
            + ", ".join(f"{p.value}={s.size}B ({s.ratio}%)" for p, s in stats.items())
        )

        report = FileSuccessReport(
            name=item.name,
            original_size=item.size,
            desktop=stats[Profile.DESKTOP],
            mobile=stats[Profile.MOBILE],
        )
        return ItemOutcome(report=report, variants=variants)
