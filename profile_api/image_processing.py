import io

from PIL import Image, ImageOps, UnidentifiedImageError

from .config import AVATAR_SIZE, AVATAR_JPEG_QUALITY
from .exceptions import InvalidImageData, UnsupportedMediaType

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
OUTPUT_CONTENT_TYPE = "image/jpeg"


def normalize_avatar(data: bytes, content_type: str, size: int = AVATAR_SIZE, quality: int = AVATAR_JPEG_QUALITY) -> bytes:
    """Turn an uploaded JPEG/PNG into a ``size`` x ``size`` progressive JPEG.

    The image is scaled to cover the square and cropped around its center.
    Transparent or palette images are flattened onto white before encoding.

    Raises:
        UnsupportedMediaType: ``content_type`` is not JPEG or PNG.
        InvalidImageData: the bytes cannot be decoded.
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaType()

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise InvalidImageData() from e

    # Camera JPEGs are often stored sideways with an orientation tag
    img = ImageOps.exif_transpose(img)

    if img.mode in ("RGBA", "LA") or img.mode == "P":
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.getchannel("A"))
        img = background
    elif img.mode != "RGB":
        img = img.convert("RGB")

    img = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality, progressive=True, optimize=True)
    return out.getvalue()
