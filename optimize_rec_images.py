# /// script
# dependencies = ["pillow", "jinja2"]
# ///
"""
Optimize recommendation cover images.

Usage:
    uv run --script optimize_rec_images.py

Converts every .jpg / .jpeg / .png in public/assets/img/recommendations/ to
an 800px-wide WebP (quality 80) next to it, then deletes the original.
Remember to point recommendations.json at the .webp names afterwards.
"""

import sys
from pathlib import Path

from extract_exif import format_bytes, render_webp

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

REC_DIR = Path("public/assets/img/recommendations")
MAX_WIDTH = 800
QUALITY = 80

CONVERT_EXTENSIONS = {".jpg", ".jpeg", ".png"}


def optimize_recommendations(directory: Path = REC_DIR, width: int = MAX_WIDTH,
                             quality: int = QUALITY) -> int:
    """Convert covers in `directory` to WebP. Returns the number converted."""
    files = sorted(
        f for f in directory.iterdir()
        if f.is_file() and f.suffix.lower() in CONVERT_EXTENSIONS
    )
    if not files:
        print("No JPG/PNG files to convert.")
        return 0

    converted = 0
    written = set()
    for src in files:
        out = src.with_suffix(".webp")
        if out in written:
            # cover.jpg and cover.png would both become cover.webp
            print(f"  {src.name}: {out.name} already written this run, keeping original",
                  file=sys.stderr)
            continue
        before = src.stat().st_size
        try:
            render_webp(src, out, width, quality)
        except Exception as e:
            print(f"  {src.name}: conversion failed, keeping original ({e})", file=sys.stderr)
            continue

        after = out.stat().st_size
        pct = f"{(1 - after / before) * 100:.0f}" if before else "0"
        print(f"  {src.name} -> {out.name}  ({format_bytes(before)} -> {format_bytes(after)}, {pct}% smaller)")
        written.add(out)
        src.unlink()
        converted += 1

    print(f"\nConverted {converted} image(s). Remember to use .webp in recommendations.json.")
    return converted


def main() -> int:
    try:
        optimize_recommendations()
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
