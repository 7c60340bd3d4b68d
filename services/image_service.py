import logging
import secrets
from datetime import UTC, datetime
from io import BytesIO

from anyio import Path, to_thread
from PIL import Image, ImageOps, UnidentifiedImageError
from sentry_sdk import trace

from config import IMAGE_MAX_HEIGHT, IMAGE_MAX_WIDTH, IMAGE_QUALITY, PHOTOS_DIR
from exceptions import InvalidImageError, StorageWriteError
from models.stored_image import StoredImage

_KEY_ATTEMPTS = 8


class ImageService:
    """
    Normalizes uploaded photos and keeps them on the filesystem, keyed by generated filename.
    """

    def __init__(self, root: Path = PHOTOS_DIR) -> None:
        self.root = root

    @trace
    async def normalize(self, raw: bytes) -> StoredImage:
        data = await to_thread.run_sync(_normalize_image, raw)
        key = await self._write(data)
        logging.debug('Stored photo %r (%.2fKB)', key, len(data) / 1024)
        return StoredImage(key=key, data=data)

    @trace
    async def get(self, key: str) -> bytes | None:
        if not _is_valid_key(key):
            return None

        path = self.root / key
        try:
            return await path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None

    async def _write(self, data: bytes) -> str:
        """
        Write the photo under a temporary name, then link it to a fresh key.

        Linking fails when the key is taken, so an existing photo is never replaced.
        Returns the key the photo was stored under.
        """
        try:
            await self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageWriteError(f'Failed to prepare photo storage {str(self.root)!r}: {e}') from e

        tmp = self.root / f'.{secrets.token_hex(8)}.tmp'
        try:
            await tmp.write_bytes(data)
            for _ in range(_KEY_ATTEMPTS):
                key = _generate_key()
                try:
                    await (self.root / key).hardlink_to(tmp)
                except FileExistsError:
                    logging.debug('Photo key %r is taken, generating another', key)
                    continue
                return key
        except OSError as e:
            raise StorageWriteError(f'Failed to write photo: {e}') from e
        finally:
            await tmp.unlink(missing_ok=True)

        raise StorageWriteError(f'No free photo key after {_KEY_ATTEMPTS} attempts')


def _generate_key() -> str:
    token = secrets.token_hex(2)
    timestamp = datetime.now(UTC).strftime('%Y%m%d%H%M%S')
    return f'{token}_{timestamp}.jpg'


def _is_valid_key(key: str) -> bool:
    return bool(key) and not key.startswith('.') and '/' not in key and '\\' not in key and '\0' not in key


def _normalize_image(raw: bytes) -> bytes:
    try:
        img = Image.open(BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise InvalidImageError(f'Unreadable image: {e}') from e

    img = ImageOps.exif_transpose(img)
    img = _resize_image(img)

    if img.mode != 'RGB':
        img = img.convert('RGB')

    with BytesIO() as buffer:
        img.save(buffer, format='JPEG', quality=IMAGE_QUALITY, optimize=True)
        return buffer.getvalue()


def _resize_image(img: Image.Image) -> Image.Image:
    width, height = img.size
    if width <= IMAGE_MAX_WIDTH and height <= IMAGE_MAX_HEIGHT:
        return img

    ratio = min(IMAGE_MAX_WIDTH / width, IMAGE_MAX_HEIGHT / height)
    new_width = max(1, min(IMAGE_MAX_WIDTH, round(width * ratio)))
    new_height = max(1, min(IMAGE_MAX_HEIGHT, round(height * ratio)))
    return img.resize((new_width, new_height), Image.Resampling.LANCZOS)

