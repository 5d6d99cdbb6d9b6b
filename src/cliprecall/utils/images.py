import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

from cliprecall.exceptions import ClipboardWriteFailure

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
DATA_URL_PREFIX = "data:image/png;base64,"


def is_png(data: bytes) -> bool:
    return data.startswith(PNG_SIGNATURE)


def to_png(data: bytes) -> bytes:
    """Return ``data`` as PNG bytes, re-encoding other formats losslessly."""
    if is_png(data):
        return data
    with Image.open(io.BytesIO(data)) as image:
        output = io.BytesIO()
        image.save(output, format="PNG")
        return output.getvalue()


def image_to_png(image: Image.Image) -> bytes:
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def to_data_url(png: bytes) -> str:
    return DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")


def from_data_url(data_url: str) -> bytes:
    if not data_url.startswith(DATA_URL_PREFIX):
        raise ValueError("not a PNG data URL")
    return base64.b64decode(data_url[len(DATA_URL_PREFIX):], validate=True)


def decode_image(data: bytes) -> Image.Image:
    """Decode stored bytes into a live image, failing loudly on empty results."""
    if not data:
        raise ClipboardWriteFailure("image payload is empty")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ClipboardWriteFailure("image payload could not be decoded", e) from e

    width, height = image.size
    if width == 0 or height == 0:
        raise ClipboardWriteFailure("decoded image is empty")
    logger.debug("Decoded image %sx%s mode=%s", width, height, image.mode)
    return image


def to_dib(image: Image.Image) -> bytes:
    """Device-independent bitmap bytes (BMP without its 14-byte file header)."""
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGB")
    elif image.mode == "RGBA":
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[3])
        image = background

    output = io.BytesIO()
    image.save(output, "BMP")
    bmp_data = output.getvalue()
    if len(bmp_data) <= 14:
        raise ClipboardWriteFailure("bitmap conversion produced no data")
    return bmp_data[14:]
