import io
import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from photodrop.config import Settings  # noqa: E402


def _image_bytes(fmt: str = "JPEG", pad_to: int = 0, size=(8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buf, format=fmt)
    data = buf.getvalue()
    if pad_to > len(data):
        # decoders ignore trailing bytes, so padding keeps the image valid
        data += b"\0" * (pad_to - len(data))
    return data


@pytest.fixture
def make_image():
    return _image_bytes


@pytest.fixture
def settings(tmp_path, monkeypatch):
    # keep a stray .env / config.yml in the working directory out of the tests
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PHOTODROP_CONFIG", raising=False)
    return Settings(upload_dir=tmp_path / "uploads", static_dir=tmp_path / "public")


@pytest.fixture
def upload_dir(settings) -> Path:
    return settings.upload_dir
