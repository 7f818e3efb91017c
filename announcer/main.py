from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from . import config
from .pipeline.parse import parse
from .pipeline.render import RenderError
from .pipeline.run import generate_variants, render_document
from .pipeline.themes import get_canvas_size, get_theme, list_canvas_sizes, list_themes
from .storage import image_path, write_image

app = typer.Typer(help="Turn announcement text into a themed image")
logger = logging.getLogger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _read_text(text: Optional[str], file: Optional[Path]) -> str:
    if text is not None:
        return text
    if file is not None:
        if not file.exists():
            typer.echo(f"Input not found: {file}", err=True)
            raise typer.Exit(code=1)
        return file.read_text(encoding="utf-8")
    return sys.stdin.read()


@app.command()
def render(
    text: Optional[str] = typer.Option(None, "--text", help="Announcement text"),
    file: Optional[Path] = typer.Option(None, "--file", help="Read announcement text from a file"),
    style: str = typer.Option(config.DEFAULT_STYLE, "--style", help="modern | business | colorful | minimal"),
    size: str = typer.Option(config.DEFAULT_SIZE, "--size", help="small | medium | large | square"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    output: Optional[Path] = typer.Option(None, "--output", help="Exact output file (single image only, not with --all)"),
    fmt: str = typer.Option("png", "--format", help="png | jpeg"),
    font: Optional[str] = typer.Option(None, "--font", help="Font name or .ttf path"),
    all_variants: bool = typer.Option(False, "--all", help="Render every style and size"),
) -> None:
    if all_variants and output:
        raise typer.BadParameter("a single output file cannot hold every variant, use --out", param_hint="--output")
    if out:
        config.set_out_dir(out)
    source = _read_text(text, file)
    doc = parse(source)

    try:
        if all_variants:
            images = generate_variants(source, font=font)
            for (style_id, size_id), pix in images.items():
                path = write_image(pix, image_path(doc.title, style_id, size_id, fmt=fmt), fmt)
                typer.echo(str(path))
            return

        theme = get_theme(style)
        canvas_size = get_canvas_size(size)
        pix = render_document(doc, theme.id, canvas_size.id, font=font)
    except RenderError as exc:
        typer.echo(f"Render failed: {exc}", err=True)
        raise typer.Exit(code=1)

    path = output or image_path(doc.title, theme.id, canvas_size.id, fmt=fmt)
    write_image(pix, path, fmt)
    typer.echo(str(path))


@app.command()
def styles() -> None:
    for theme in list_themes():
        p = theme.palette
        typer.echo(f"{theme.id}\t{theme.display_name}\t{p.background} {p.primary} {p.secondary} {p.accent}")


@app.command()
def sizes() -> None:
    for size in list_canvas_sizes():
        typer.echo(f"{size.id}\t{size.display_name}\t{size.width}x{size.height}")


@app.command()
def template() -> None:
    typer.echo(config.PROMPT_TEMPLATE)


if __name__ == "__main__":
    app()
