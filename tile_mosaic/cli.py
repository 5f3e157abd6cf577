"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from tile_mosaic.compositor import composite
from tile_mosaic.config import MosaicConfig
from tile_mosaic.errors import MosaicError
from tile_mosaic.image_io import load_image, make_comparison_grid, save_image
from tile_mosaic.palette import Palette, build_palette

app = typer.Typer(
    name="tile-mosaic",
    help="Rebuild any image as a mosaic of smaller tile images.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()
logger = logging.getLogger("tile_mosaic")

# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


@contextmanager
def _progress(label: str) -> Iterator[Callable[[int, int], None]]:
    """Yield a ``(done, total)`` callback that drives a Rich progress bar."""
    with Progress(
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task(label, total=None)

        def update(done: int, total: int) -> None:
            bar.update(task, completed=done, total=total)

        yield update


def _obtain_palette(tiles_dir: Path, cache: Path | None) -> Palette:
    """Load the palette from *cache* if it exists, else build (and cache) it."""
    if cache is not None and cache.exists():
        palette = Palette.load(cache)
        logger.info("Palette loaded from %s (%d tiles)", cache, len(palette))
        return palette

    tiles = _collect_images(tiles_dir, _DEFAULTS.SUPPORTED_EXTENSIONS)
    if not tiles:
        msg = f"No tile images found in {tiles_dir}/"
        raise MosaicError(msg)

    with _progress("generating palette") as update:
        palette = build_palette(tiles, progress=update)

    if cache is not None:
        palette.save(cache)
        logger.info("Palette cached to %s", cache)
    return palette


def _render_one(
    source_path: Path,
    output_path: Path,
    palette: Palette,
    cfg: MosaicConfig,
) -> None:
    t_total = time.perf_counter()
    source = load_image(source_path)

    with _progress("mapping pixels") as update:
        mosaic = composite(
            source,
            cfg.scale,
            cfg.tile_width,
            cfg.tile_height,
            palette,
            dither=cfg.dither,
            progress=update,
        )

    save_image(mosaic, output_path)

    if cfg.save_comparison:
        comp_path = output_path.with_name(f"{output_path.stem}_comparison.png")
        make_comparison_grid(source_path, mosaic, comp_path)

    h, w = mosaic.shape[:2]
    console.print(
        f"  [green]✓[/green] {output_path}  "
        f"[dim]{w}x{h} px  time={time.perf_counter() - t_total:.1f}s[/dim]"
    )


# -- render command ----------------------------------------------------

@app.command()
def render(
    source: Path = typer.Argument(..., help="Image to turn into a mosaic"),
    tiles_dir: Path = typer.Option(
        _DEFAULTS.palette_dir, "--tiles", "-t", help="Folder of tile images",
    ),
    output: Path = typer.Option(Path("output/mosaic.png"), "--output", "-o"),
    tile_width: int = typer.Option(
        _DEFAULTS.tile_width, "--tile-width", "-W", help="Tile width in output pixels",
    ),
    tile_height: int = typer.Option(
        _DEFAULTS.tile_height, "--tile-height", "-H", help="Tile height in output pixels",
    ),
    scale: float = typer.Option(
        _DEFAULTS.scale, "--scale", "-s", help="Output size relative to the source",
    ),
    dither: bool = typer.Option(
        _DEFAULTS.dither, "--dither/--no-dither", help="Floyd-Steinberg dithering",
    ),
    cache: Path | None = typer.Option(
        _DEFAULTS.cache_path, "--cache", "-c",
        help="Palette cache file (read if present, otherwise written)",
    ),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
        help="Also save a Source | Mosaic preview",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Render a single image."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            tile_width=tile_width,
            tile_height=tile_height,
            scale=scale,
            dither=dither,
            palette_dir=tiles_dir,
            cache_path=cache,
            save_comparison=comparison,
        )
        palette = _obtain_palette(cfg.palette_dir, cfg.cache_path)
        _render_one(source, output, palette, cfg)
    except MosaicError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with source images",
    ),
    tiles_dir: Path = typer.Option(
        _DEFAULTS.palette_dir, "--tiles", "-t", help="Folder of tile images",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Results folder",
    ),
    tile_width: int = typer.Option(_DEFAULTS.tile_width, "--tile-width", "-W"),
    tile_height: int = typer.Option(_DEFAULTS.tile_height, "--tile-height", "-H"),
    scale: float = typer.Option(_DEFAULTS.scale, "--scale", "-s"),
    dither: bool = typer.Option(_DEFAULTS.dither, "--dither/--no-dither"),
    cache: Path | None = typer.Option(_DEFAULTS.cache_path, "--cache", "-c"),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Render every image in INPUT_DIR into OUTPUT_DIR with one shared palette."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            tile_width=tile_width,
            tile_height=tile_height,
            scale=scale,
            dither=dither,
            palette_dir=tiles_dir,
            cache_path=cache,
            save_comparison=comparison,
            input_dir=input_dir,
            output_dir=output_dir,
        )
    except MosaicError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    images = _collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    console.print(Panel.fit(
        f"[bold]TILE MOSAIC[/bold]\n"
        f"Tiles: {cfg.palette_dir}  |  Tile size: {cfg.tile_width}x{cfg.tile_height}\n"
        f"Scale: {cfg.scale}  |  Dithering: {cfg.dither}  |  Images: {len(images)}",
        border_style="cyan",
    ))

    try:
        palette = _obtain_palette(cfg.palette_dir, cfg.cache_path)
        for idx, img_path in enumerate(images, 1):
            console.rule(f"[bold cyan][{idx}/{len(images)}] {img_path.name}[/bold cyan]")
            out = output_dir / f"{img_path.stem}_mosaic.{cfg.output_format}"
            _render_one(img_path, out, palette, cfg)
    except MosaicError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    console.print(Panel.fit(
        f"[bold green]ALL DONE[/bold green] - results in [bold]{output_dir}/[/bold]",
        border_style="green",
    ))


# -- palette command ---------------------------------------------------

@app.command()
def palette(
    tiles_dir: Path = typer.Option(
        _DEFAULTS.palette_dir, "--tiles", "-t", help="Folder of tile images",
    ),
    cache: Path = typer.Option(..., "--cache", "-c", help="Palette cache file to write"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Average every tile in TILES_DIR and write the palette cache."""
    _setup_logging(verbose)

    tiles = _collect_images(tiles_dir, _DEFAULTS.SUPPORTED_EXTENSIONS)
    if not tiles:
        console.print(f"[yellow]No tile images found in {tiles_dir}/[/yellow]")
        raise typer.Exit(1)

    try:
        with _progress("generating palette") as update:
            result = build_palette(tiles, progress=update)
        result.save(cache)
    except MosaicError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    console.print(f"[green]✓[/green] {len(result)} tiles cached to {cache}")


if __name__ == "__main__":
    app()
