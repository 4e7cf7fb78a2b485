import io

import pytest
from PIL import Image

from sheetgen.app_factory import create_app
from sheetgen.models import Upload


def solid_image(width, height, color=(255, 255, 255, 255)):
    return Image.new("RGBA", (width, height), color)


def png_bytes(img):
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def descriptor_xml(image_path, entries):
    """Build a TextureAtlas document from a list of attribute dicts."""
    subs = "".join(
        "<SubTexture " + " ".join(f'{k}="{v}"' for k, v in entry.items()) + "/>"
        for entry in entries
    )
    return f'<?xml version="1.0" encoding="utf-8"?><TextureAtlas imagePath="{image_path}">{subs}</TextureAtlas>'.encode("utf-8")


@pytest.fixture
def make_upload():
    def _make(filename, img):
        return Upload(filename=filename, data=png_bytes(img))

    return _make


@pytest.fixture
def client():
    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
