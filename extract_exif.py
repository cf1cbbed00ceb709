# /// script
# dependencies = ["pillow", "jinja2"]
# ///
"""
Photo processing: build the photography page data from a folder of originals.

Usage:
    uv run --script extract_exif.py

Reads every image in photos-source/ and:
  1. Writes WebP thumbnails (800px wide) to public/assets/img/photography/thumbs/
  2. Writes WebP display versions (1920px wide) to public/assets/img/photography/display/
  3. Pulls the capture date and camera out of the embedded EXIF
  4. Merges captions/tags from photos-source/metadata.json
  5. Writes src/data/photos.json
  6. Writes photos-source/_preview.html so you can see which file is which

Workflow: drop originals into photos-source/, run this, open _preview.html,
fill in captions and tags in metadata.json, run again, commit.
"""

import json
import os
import re
import sys
from pathlib import Path

from PIL import ExifTags, Image, ImageOps
from jinja2 import Environment

_jinja_env = Environment(autoescape=True)
Template = _jinja_env.from_string

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

SOURCE_DIR = Path("photos-source")
METADATA_FILE = SOURCE_DIR / "metadata.json"
PREVIEW_FILE = SOURCE_DIR / "_preview.html"
OUTPUT_DIR = Path("public/assets/img/photography")
THUMB_DIR = OUTPUT_DIR / "thumbs"
DISPLAY_DIR = OUTPUT_DIR / "display"
OUTPUT_FILE = Path("src/data/photos.json")

THUMB_URL = "/assets/img/photography/thumbs"
DISPLAY_URL = "/assets/img/photography/display"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".tiff"}

THUMB_WIDTH = 800
DISPLAY_WIDTH = 1920
THUMB_QUALITY = 80
DISPLAY_QUALITY = 85

# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def read_image_info(src: Path) -> tuple[int, int, bytes | None]:
    """Decode `src` and return (width, height, raw EXIF blob or None)."""
    with Image.open(src) as img:
        img.load()
        width, height = img.size
        raw = img.info.get("exif")
        if not raw:
            # TIFF keeps its tags in the IFD rather than an exif blob
            try:
                exif = img.getexif()
                raw = exif.tobytes() if len(exif) else None
            except Exception:
                raw = None
    return width, height, raw


def render_webp(src: Path, dst: Path, width: int, quality: int):
    """Write an auto-rotated WebP of `src` at most `width` pixels wide."""
    with Image.open(src) as img:
        img = ImageOps.exif_transpose(img)
        if img.mode not in ("RGB", "RGBA"):
            has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
            img = img.convert("RGBA" if has_alpha else "RGB")

        w, h = img.size
        if w > width:
            img = img.resize((width, max(1, round(h * width / w))), Image.LANCZOS)

        dst.parent.mkdir(parents=True, exist_ok=True)
        img.save(dst, "WEBP", quality=quality)


# ---------------------------------------------------------------------------
# EXIF
# ---------------------------------------------------------------------------

DATE_PATTERN = re.compile(r"(\d{4}):(\d{2}):(\d{2}) \d{2}:\d{2}:\d{2}")

# Order matters: the first anchor that matches decides the model string.
MAKE_MODEL_PATTERNS = [
    re.compile(r"SONY\x00([^\x00]+)"),
    re.compile(r"Canon\x00([^\x00]+)"),
    re.compile(r"NIKON[^\x00]*\x00([^\x00]+)"),
    re.compile(r"FUJIFILM\x00([^\x00]+)"),
    re.compile(r"Panasonic\x00([^\x00]+)"),
    re.compile(r"OLYMPUS[^\x00]*\x00([^\x00]+)"),
    re.compile(r"RICOH[^\x00]*\x00([^\x00]+)"),
    re.compile(r"LEICA[^\x00]*\x00([^\x00]+)"),
    re.compile(r"Apple\x00([^\x00]+)"),
    re.compile(r"samsung\x00([^\x00]+)", re.IGNORECASE),
    re.compile(r"Google\x00([^\x00]+)"),
]

MAKE_PATTERN = re.compile(
    r"(SONY|Canon|NIKON|FUJIFILM|Panasonic|OLYMPUS|RICOH|LEICA|Apple|samsung|Google)",
    re.IGNORECASE,
)


def _to_float(val) -> float | None:
    try:
        if isinstance(val, tuple) and len(val) == 2:
            num, den = val
            return float(num) / float(den) if den else None
        f = float(val)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    # IFDRational with a zero denominator comes back as nan
    return None if f != f else f


def _format_shutter(val) -> str | None:
    f = _to_float(val)
    if not f or f <= 0:
        return None
    if f >= 1:
        return f"{f:g}s"
    return f"1/{round(1 / f)}s"


def _format_aperture(val) -> str | None:
    f = _to_float(val)
    if not f:
        return None
    return "f/" + f"{f:.1f}".rstrip("0").rstrip(".")


def _format_focal_length(val) -> str | None:
    f = _to_float(val)
    if not f:
        return None
    return f"{f:.0f}mm"


def _exposure_fields(raw: bytes) -> dict:
    """Read focal length, aperture, ISO and shutter from the Exif sub-IFD."""
    exif = Image.Exif()
    exif.load(raw)
    ifd = exif.get_ifd(ExifTags.IFD.Exif)

    result = {}
    focal = _format_focal_length(ifd.get(ExifTags.Base.FocalLength))
    if focal:
        result["focalLength"] = focal
    aperture = _format_aperture(ifd.get(ExifTags.Base.FNumber))
    if aperture:
        result["aperture"] = aperture
    iso = ifd.get(ExifTags.Base.ISOSpeedRatings)
    if isinstance(iso, (list, tuple)):
        iso = iso[0] if iso else None
    if iso:
        result["iso"] = int(iso)
    shutter = _format_shutter(ifd.get(ExifTags.Base.ExposureTime))
    if shutter:
        result["shutter"] = shutter
    return result


def parse_exif_buffer(raw: bytes | None) -> dict:
    """Best-effort date/camera extraction from a raw EXIF blob.

    The blob is scanned as Latin-1 text: EXIF strings are NUL-separated
    ASCII, so the date and the make/model pair can be found with plain
    regexes. Exposure settings come from Pillow's structured reader over
    the same bytes. Never raises; anything unreadable is left out.
    """
    result = {}
    if not raw:
        return result

    try:
        text = raw.decode("latin-1")

        m = DATE_PATTERN.search(text)
        if m:
            result["date"] = f"{m.group(1)}-{m.group(2)}-{m.group(3)}"

        for pattern in MAKE_MODEL_PATTERNS:
            match = pattern.search(text)
            if match:
                model = match.group(1).strip()
                make = MAKE_PATTERN.search(text)
                result["camera"] = f"{make.group(1)} {model}" if make else model
                break
    except Exception:
        pass

    try:
        result.update(_exposure_fields(raw))
    except Exception:
        pass

    return result


# ---------------------------------------------------------------------------
# Metadata (captions + tags)
# ---------------------------------------------------------------------------

def load_metadata(path: Path) -> dict:
    """Load metadata.json keyed by filename; a broken file counts as empty."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        print(f"  Warning: could not parse {path.name}: {e}", file=sys.stderr)
        return {}
    if not isinstance(data, dict):
        print(f"  Warning: {path.name} is not an object keyed by filename, ignoring it",
              file=sys.stderr)
        return {}
    print(f"  Loaded metadata for {len(data)} photo(s) from {path.name}")
    return data


def ensure_entry(metadata: dict, filename: str) -> bool:
    """Add an empty caption/tags entry for `filename`. Returns True if added."""
    if filename in metadata:
        return False
    metadata[filename] = {"caption": "", "tags": []}
    return True


def user_entry(metadata: dict, filename: str) -> dict:
    """Caption and tags for `filename`, with hand-edited junk read as empty.

    The stored entry is never rewritten, only how it is read.
    """
    entry = metadata.get(filename)
    if not isinstance(entry, dict):
        return {"caption": "", "tags": []}
    caption = entry.get("caption")
    tags = entry.get("tags")
    return {
        "caption": caption if isinstance(caption, str) else "",
        "tags": [str(t) for t in tags] if isinstance(tags, list) else [],
    }


def write_json(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


# ---------------------------------------------------------------------------
# Preview page
# ---------------------------------------------------------------------------

PREVIEW_TEMPLATE = Template("""\
<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Photo Preview &mdash; edit {{ metadata_name }} to add captions and tags</title>
<style>
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; background: #f5f5f5; }
  h1 { font-size: 20px; color: #333; }
  p { color: #666; font-size: 14px; }
  code { background: #e8e8e8; padding: 2px 6px; border-radius: 4px; font-size: 13px; }
  .grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(220px, 1fr)); gap: 16px; margin-top: 20px; }
  .card { border: 1px solid #ddd; border-radius: 8px; overflow: hidden; background: #fff; }
  .card img { width: 100%; height: 200px; object-fit: cover; display: block; }
  .card .body { padding: 8px; }
  .card strong { font-size: 13px; word-break: break-all; }
  .date { font-size: 11px; color: #666; margin-top: 2px; }
  .field { font-size: 11px; color: #0d7377; margin-top: 4px; }
  .field em { color: #999; }
  .tag { background: #e0f2f1; padding: 1px 6px; border-radius: 10px; font-size: 10px; }
</style>
</head>
<body>
<h1>Photo Preview</h1>
<p>Use this page to identify your photos by filename, then edit <code>{{ metadata_name }}</code> (in this same folder) to add captions and tags.</p>
<p>After editing, run <code>photos-exif</code> again to update the site.</p>
<div class="grid">
{% for card in cards %}
<div class="card">
  <img src="{{ card.thumb }}" alt="{{ card.file }}" loading="lazy">
  <div class="body">
    <strong>{{ card.file }}</strong>
    {% if card.date %}<div class="date">{{ card.date }}</div>{% endif %}
    <div class="field">caption: {% if card.caption %}"{{ card.caption }}"{% else %}<em>empty</em>{% endif %}</div>
    <div class="field">tags: {% for t in card.tags %}<span class="tag">{{ t }}</span> {% else %}<em>none</em>{% endfor %}</div>
  </div>
</div>
{% endfor %}
</div>
</body>
</html>
""")


def generate_preview(files: list[str], metadata: dict, photos: list[dict],
                     preview_file: Path = PREVIEW_FILE, thumb_dir: Path = THUMB_DIR,
                     metadata_name: str = METADATA_FILE.name):
    """Write an HTML contact sheet mapping source filenames to thumbnails."""
    by_name = {Path(p["thumb"]).name: p for p in photos}
    base = os.path.abspath(preview_file.parent)

    cards = []
    for file in files:
        webp_name = f"{Path(file).stem}.webp"
        meta = user_entry(metadata, file)
        photo = by_name.get(webp_name) or {}
        rel_thumb = os.path.relpath(os.path.abspath(thumb_dir / webp_name), base)
        cards.append({
            "file": file,
            "thumb": Path(rel_thumb).as_posix(),
            "date": photo.get("date", ""),
            "caption": meta["caption"],
            "tags": meta["tags"],
        })

    preview_file.parent.mkdir(parents=True, exist_ok=True)
    preview_file.write_text(
        PREVIEW_TEMPLATE.render(cards=cards, metadata_name=metadata_name),
        encoding="utf-8",
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024:.0f} KB"
    return f"{n / (1024 * 1024):.1f} MB"


def humanize_name(stem: str) -> str:
    """Alt text fallback: 'golden_hour-2' -> 'golden hour 2'."""
    return re.sub(r"[-_]", " ", stem)


def _percent_smaller(before: int, after: int) -> str:
    if not before:
        return "0"
    return f"{(before - after) / before * 100:.0f}"


def list_source_images(source_dir: Path) -> list[str]:
    """Image filenames in `source_dir`, sorted; directories and other files skipped."""
    return sorted(
        f.name for f in source_dir.iterdir()
        if f.is_file() and f.suffix.lower() in IMAGE_EXTENSIONS
    )


def sort_photos(photos: list[dict]):
    """Newest first; undated photos last; ties broken by thumb path."""
    photos.sort(key=lambda p: p["thumb"])
    # stable, so equal dates keep the thumb ordering
    photos.sort(key=lambda p: p.get("date") or "", reverse=True)


def build_record(file: str, width: int, height: int, exif: dict, user_meta: dict,
                 thumb_url: str = THUMB_URL, display_url: str = DISPLAY_URL) -> dict:
    stem = Path(file).stem
    webp_name = f"{stem}.webp"
    caption = user_meta.get("caption") or ""
    return {
        "thumb": f"{thumb_url}/{webp_name}",
        "display": f"{display_url}/{webp_name}",
        "alt": caption or humanize_name(stem),
        "caption": caption,
        "date": exif.get("date", ""),
        "camera": exif.get("camera", ""),
        "tags": user_meta.get("tags") or [],
        "exif": {
            "focalLength": exif.get("focalLength", ""),
            "aperture": exif.get("aperture", ""),
            "iso": exif.get("iso"),
            "shutter": exif.get("shutter", ""),
            "width": width,
            "height": height,
        },
    }


def process_photos(source_dir: Path = SOURCE_DIR, metadata_file: Path = METADATA_FILE,
                   thumb_dir: Path = THUMB_DIR, display_dir: Path = DISPLAY_DIR,
                   output_file: Path = OUTPUT_FILE, preview_file: Path = PREVIEW_FILE,
                   thumb_url: str = THUMB_URL, display_url: str = DISPLAY_URL) -> list[dict]:
    """Render, describe and index every photo in `source_dir`.

    Writes the manifest, the updated metadata file and the preview page.
    A photo that fails to decode or encode is reported and left out; the
    rest of the batch carries on. Returns the sorted manifest records.
    """
    if not source_dir.exists():
        print(f"  Source directory not found: {source_dir}, creating it")
        source_dir.mkdir(parents=True, exist_ok=True)
        write_json(output_file, [])
        print(f"  Wrote empty {output_file}. Drop your photos into {source_dir}/ and run again.")
        return []

    files = list_source_images(source_dir)
    if not files:
        print(f"  No image files found in {source_dir}")
        write_json(output_file, [])
        print(f"  Wrote empty {output_file}")
        return []

    print(f"  Found {len(files)} image(s) in {source_dir}")
    metadata = load_metadata(metadata_file)

    thumb_dir.mkdir(parents=True, exist_ok=True)
    display_dir.mkdir(parents=True, exist_ok=True)

    photos = []
    total = len(files)
    for i, file in enumerate(files):
        src = source_dir / file
        webp_name = f"{Path(file).stem}.webp"
        user_meta = user_entry(metadata, file)

        try:
            width, height, raw_exif = read_image_info(src)
            exif = parse_exif_buffer(raw_exif)

            thumb_path = thumb_dir / webp_name
            render_webp(src, thumb_path, THUMB_WIDTH, THUMB_QUALITY)
            display_path = display_dir / webp_name
            render_webp(src, display_path, DISPLAY_WIDTH, DISPLAY_QUALITY)

            original_size = src.stat().st_size
            thumb_size = thumb_path.stat().st_size
            display_size = display_path.stat().st_size

            photos.append(build_record(file, width, height, exif, user_meta,
                                       thumb_url=thumb_url, display_url=display_url))
            ensure_entry(metadata, file)

            line = (
                f"  [{i+1}/{total}] {file}: {width}x{height} | "
                f"original {format_bytes(original_size)} -> "
                f"thumb {format_bytes(thumb_size)} + display {format_bytes(display_size)} "
                f"({_percent_smaller(original_size, thumb_size + display_size)}% smaller)"
            )
            if user_meta.get("caption"):
                line += f" [{user_meta['caption']}]"
            print(line)
        except Exception as e:
            print(f"  [{i+1}/{total}] Error processing {file}: {e}", file=sys.stderr)

    sort_photos(photos)

    write_json(output_file, photos)
    print(f"\n  Wrote {len(photos)} photo(s) to {output_file}")

    write_json(metadata_file, metadata)
    print(f"  Wrote {len(metadata)} entries to {metadata_file.name}")

    try:
        generate_preview(files, metadata, photos, preview_file=preview_file,
                         thumb_dir=thumb_dir, metadata_name=metadata_file.name)
        print(f"  Wrote {preview_file}")
    except Exception as e:
        print(f"  Warning: preview generation failed: {e}", file=sys.stderr)

    total_original = sum((source_dir / f).stat().st_size for f in files)
    total_thumb = sum((thumb_dir / Path(p["thumb"]).name).stat().st_size for p in photos)
    total_display = sum((display_dir / Path(p["display"]).name).stat().st_size for p in photos)

    print("\n--- Summary ---")
    print(f"  Processed:     {len(photos)}/{total}")
    print(f"  Originals:     {format_bytes(total_original)}")
    print(f"  Thumbnails:    {format_bytes(total_thumb)} (grid view)")
    print(f"  Display:       {format_bytes(total_display)} (lightbox)")
    print(f"  Page load:     {format_bytes(total_thumb)} (was {format_bytes(total_original)})")
    print(f"  Reduction:     {_percent_smaller(total_original, total_thumb)}% smaller for initial page load")

    return photos


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    print("Processing photos...")
    try:
        process_photos()
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

    print(f"\nDone! Open {PREVIEW_FILE} to see thumbnails + filenames.")
    print(f"Edit {METADATA_FILE} to add captions and tags, then run again.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
