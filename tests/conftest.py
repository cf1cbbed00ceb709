from types import SimpleNamespace

import pytest
from PIL import ExifTags, Image

import extract_exif


def _camera_exif(make=None, model=None, taken=None, orientation=None):
    exif = Image.Exif()
    if make:
        exif[ExifTags.Base.Make] = make
    if model:
        exif[ExifTags.Base.Model] = model
    if taken:
        exif[ExifTags.Base.DateTime] = taken
    if orientation:
        exif[ExifTags.Base.Orientation] = orientation
    return exif


@pytest.fixture
def camera_exif():
    return _camera_exif


@pytest.fixture
def make_image():
    def _make(path, size=(64, 48), color=(200, 120, 40), exif=None):
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new("RGB", size, color)
        if exif is not None:
            img.save(path, exif=exif)
        else:
            img.save(path)
        return path
    return _make


@pytest.fixture
def site(tmp_path):
    source = tmp_path / "photos-source"
    output = tmp_path / "public" / "assets" / "img" / "photography"
    return SimpleNamespace(
        root=tmp_path,
        source=source,
        metadata=source / "metadata.json",
        preview=source / "_preview.html",
        thumbs=output / "thumbs",
        display=output / "display",
        manifest=tmp_path / "src" / "data" / "photos.json",
    )


@pytest.fixture
def run(site):
    def _run():
        return extract_exif.process_photos(
            source_dir=site.source,
            metadata_file=site.metadata,
            thumb_dir=site.thumbs,
            display_dir=site.display,
            output_file=site.manifest,
            preview_file=site.preview,
        )
    return _run
