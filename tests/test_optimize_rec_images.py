from PIL import Image

import optimize_rec_images
from optimize_rec_images import optimize_recommendations


def test_converts_and_removes_originals(tmp_path, make_image):
    make_image(tmp_path / "book.jpg", size=(1600, 2400))
    make_image(tmp_path / "album.PNG", size=(500, 500))
    make_image(tmp_path / "film.jpeg", size=(900, 600))
    (tmp_path / "recommendations.json").write_text("[]")
    make_image(tmp_path / "already.webp")

    assert optimize_recommendations(tmp_path) == 3

    assert not (tmp_path / "book.jpg").exists()
    assert not (tmp_path / "album.PNG").exists()
    assert not (tmp_path / "film.jpeg").exists()
    with Image.open(tmp_path / "book.webp") as img:
        assert img.size == (800, 1200)
    with Image.open(tmp_path / "album.webp") as img:
        assert img.size == (500, 500)
    with Image.open(tmp_path / "film.webp") as img:
        assert img.size == (800, 533)
    assert (tmp_path / "already.webp").exists()
    assert (tmp_path / "recommendations.json").exists()


def test_nothing_to_convert(tmp_path, capsys):
    (tmp_path / "cover.webp").write_bytes(b"")
    assert optimize_recommendations(tmp_path) == 0
    assert "No JPG/PNG files to convert." in capsys.readouterr().out


def test_failed_conversion_keeps_original(tmp_path, make_image, capsys):
    make_image(tmp_path / "good.jpg")
    (tmp_path / "bad.png").write_bytes(b"not a png")

    assert optimize_recommendations(tmp_path) == 1

    assert (tmp_path / "bad.png").exists()
    assert not (tmp_path / "good.jpg").exists()
    assert (tmp_path / "good.webp").exists()
    assert "bad.png: conversion failed" in capsys.readouterr().err


def test_main_fails_without_directory(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert optimize_rec_images.main() == 1
    assert "Fatal error" in capsys.readouterr().err


def test_main_succeeds(tmp_path, monkeypatch, make_image):
    monkeypatch.chdir(tmp_path)
    rec_dir = tmp_path / optimize_rec_images.REC_DIR
    make_image(rec_dir / "cover.jpg")

    assert optimize_rec_images.main() == 0
    assert (rec_dir / "cover.webp").exists()


def test_same_basename_does_not_lose_a_cover(tmp_path, make_image, capsys):
    make_image(tmp_path / "book.jpg", color=(10, 20, 30))
    make_image(tmp_path / "book.png", color=(200, 210, 220))

    assert optimize_recommendations(tmp_path) == 1

    assert not (tmp_path / "book.jpg").exists()
    assert (tmp_path / "book.png").exists()
    assert (tmp_path / "book.webp").exists()
    assert "book.png: book.webp already written this run" in capsys.readouterr().err
