import io
import logging

from PIL import Image

logger = logging.getLogger(__name__)


class ImageConverter:
    """Re-encodes tiles as 8-bit palette PNG"""

    def __init__(self, colors: int = 256):
        self.colors = colors

    def to_8bit(self, content: bytes) -> bytes:
        """Return palette PNG bytes, or the original bytes if conversion fails"""
        try:
            with Image.open(io.BytesIO(content)) as img:
                img.load()
                if img.mode == 'P':
                    paletted = img.copy()
                elif img.mode in ('RGBA', 'LA') or 'transparency' in img.info:
                    paletted = img.convert('RGBA').quantize(colors=self.colors,
                                                            method=Image.Quantize.FASTOCTREE)
                else:
                    paletted = img.convert('RGB').quantize(colors=self.colors)
            buf = io.BytesIO()
            paletted.save(buf, format='PNG', optimize=True)
            return buf.getvalue()
        except Exception as e:
            logger.debug("8-bit conversion failed, keeping original tile: %s", e)
            return content
