import io
import os

import pytest
from PIL import Image

from converter.conversion.capabilities import Capabilities
from converter.conversion.models import InputFile, PixelSurface


def noise_image(size=(64, 64), mode="RGB") -> Image.Image:
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    return img if mode == "RGB" else img.convert(mode)


def image_bytes(fmt="JPEG", size=(64, 64), mode="RGB", **save_kw) -> bytes:
    buf = io.BytesIO()
    with noise_image(size, mode) as img:
        img.save(buf, format=fmt, **save_kw)
    return buf.getvalue()


class RecordingEncoder:
    """Fake encoder: output length is size_for(quality); records every call."""

    def __init__(self, size_for=lambda q: int(q * 1000), fail_on=()):
        self.size_for = size_for
        self.fail_on = set(fail_on)
        self.calls = []

    def __call__(self, surface, codec, quality):
        self.calls.append(quality)
        if len(self.calls) in self.fail_on:
            return None
        return b"x" * self.size_for(quality)


@pytest.fixture
def all_caps():
    return Capabilities(webp=True, avif=True)


@pytest.fixture
def surface():
    with PixelSurface(noise_image()) as s:
        yield s


@pytest.fixture
def jpeg_file():
    return InputFile(name="photo.jpeg", content_type="image/jpeg", data=image_bytes("JPEG", quality=95))


@pytest.fixture
def png_file():
    return InputFile(name="chart.png", content_type="image/png", data=image_bytes("PNG", mode="RGBA"))
