import typer
from pathlib import Path
from typing import List, Optional
from rich.console import Console

from vbe.config.capabilities import apply_codec_defaults
from vbe.config.loader import load_config_or_default
from vbe.config.models import AppConfig
from vbe.domain.errors import BatchEncodeError, InvalidOptionsError, NoSelectionError
from vbe.domain.models import QualityMode
from vbe.infrastructure.codecs import CodecProbe
from vbe.infrastructure.engine import FFmpegEngine
from vbe.infrastructure.event_bus import EventBus
from vbe.infrastructure.ffmpeg import FFmpegAdapter
from vbe.infrastructure.ffprobe import FFprobeAdapter
from vbe.infrastructure.file_scanner import FileScanner
from vbe.infrastructure.logging import setup_logging
from vbe.infrastructure.notifier import DesktopNotifier
from vbe.pipeline.controller import EncodingController
from vbe.pipeline.dispatcher import EventDispatcher
from vbe.pipeline.registry import JobRegistry
from vbe.ui.console import ConsoleReporter, render_codecs_table, render_jobs_table

app = typer.Typer(help="VBE (Video Batch Encoder) - batch transcoding with ffmpeg")
console = Console()


class Session:
    """Wires the bus, registry, engine, controller and dispatcher for one CLI run."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.bus = EventBus()
        self.registry = JobRegistry()
        self.engine = FFmpegEngine(
            event_bus=self.bus,
            file_scanner=FileScanner(config.general.extensions),
            ffprobe_adapter=FFprobeAdapter(),
            ffmpeg_adapter=FFmpegAdapter(self.bus, debug=config.general.debug),
            codec_probe=CodecProbe(),
            notifier=DesktopNotifier(),
        )
        self.controller = EncodingController(
            self.registry, self.engine, self.bus, notify_on_finish=config.general.notify
        )
        self.dispatcher = EventDispatcher(self.bus, self.registry, self.controller)
        self.reporter = ConsoleReporter(self.bus, self.registry, console=console)


def _setup(config_path: Path, log_path: Optional[Path], debug: bool) -> AppConfig:
    try:
        config = load_config_or_default(config_path)
    except ValueError as e:
        typer.secho(f"Error: invalid config {config_path}: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if debug:
        config.general.debug = True
    if log_path is not None:
        config.general.log_path = str(log_path)

    logger = setup_logging(
        Path(config.general.log_dir),
        debug=config.general.debug,
        log_path=Path(config.general.log_path) if config.general.log_path else None,
    )
    logger.info(f"Config: format={config.encoding.video_format}, codec={config.encoding.video_codec}, debug={config.general.debug}")
    return config


def _check_paths(paths: List[Path]):
    missing = [p for p in paths if not p.exists()]
    if missing:
        for p in missing:
            typer.secho(f"Error: Path '{p}' does not exist.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _apply_quality_overrides(settings, crf: Optional[int], bitrate: Optional[int], two_pass: bool):
    if crf is not None:
        settings.quality_mode = QualityMode.CRF
        settings.crf_value = crf
    if bitrate is not None:
        settings.quality_mode = QualityMode.BITRATE
        settings.bitrate_kbps = bitrate
    if two_pass:
        settings.use_two_pass = True


def _deselect_skipped(registry: JobRegistry, names: List[str]):
    wanted = set(names)
    for job in registry.jobs():
        if job.name in wanted:
            registry.deselect(job.id)


def _jobs_table(session: Session, show_live_stats: bool):
    return render_jobs_table(
        session.registry.jobs(),
        selected=session.registry.selection.to_list(),
        show_live_stats=show_live_stats,
    )


@app.command()
def encode(
    paths: List[Path] = typer.Argument(..., help="Video files or directories to encode"),
    config_path: Path = typer.Option(Path("conf/vbe.yaml"), "--config", "-c", help="Path to YAML config"),
    video_format: Optional[str] = typer.Option(None, "--format", "-f", help="Output container (mp4, webm)"),
    codec: Optional[str] = typer.Option(None, "--codec", help="Video codec (h264, hevc_nvenc, vp9, ...)"),
    crf: Optional[int] = typer.Option(None, "--crf", help="Constant quality value (CRF mode)"),
    bitrate: Optional[int] = typer.Option(None, "--bitrate", help="Target bitrate in kbps (switches to bitrate mode)"),
    two_pass: bool = typer.Option(False, "--two-pass", help="Two-pass encoding (bitrate mode only)"),
    width: Optional[int] = typer.Option(None, "--width", help="Resize width"),
    height: Optional[int] = typer.Option(None, "--height", help="Resize height"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Output directory (default: next to source)"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Output filename prefix"),
    postfix: Optional[str] = typer.Option(None, "--postfix", help="Output filename postfix"),
    skip: Optional[List[str]] = typer.Option(None, "--skip", help="File name to leave out of the batch (repeatable)"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (overrides config)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Discover videos under PATHS and encode them as one batch."""
    _check_paths(paths)
    config = _setup(config_path, log_path, debug)
    settings = config.encoding

    # Apply CLI overrides
    if codec is not None:
        apply_codec_defaults(settings, codec)
    if width is not None and height is not None:
        settings.resize = True
        settings.width = width
        settings.height = height
    if output_dir is not None:
        settings.output_dir = str(output_dir)
    if prefix is not None:
        settings.prefix = prefix
    if postfix is not None:
        settings.postfix = postfix

    session = Session(config)
    with session.dispatcher:
        try:
            session.controller.load_codecs(settings, video_format=video_format)
        except InvalidOptionsError as e:
            typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        # Explicit quality values must follow codec reselection
        _apply_quality_overrides(settings, crf, bitrate, two_pass)

        session.dispatcher.handle_file_drop([str(p) for p in paths])
        _deselect_skipped(session.registry, skip or [])
        console.print(_jobs_table(session, show_live_stats=False))

        try:
            session.controller.start_batch(settings)
        except (NoSelectionError, BatchEncodeError):
            console.print(_jobs_table(session, show_live_stats=config.ui.show_live_stats))
            raise typer.Exit(code=1)

    console.print(_jobs_table(session, show_live_stats=False))
    console.print(f"Overall: {session.registry.overall_percent:.1f}%")


@app.command()
def probe(
    paths: List[Path] = typer.Argument(..., help="Video files or directories to describe"),
    config_path: Path = typer.Option(Path("conf/vbe.yaml"), "--config", "-c", help="Path to YAML config"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Describe videos without encoding them."""
    _check_paths(paths)
    config = _setup(config_path, None, debug)
    session = Session(config)
    with session.dispatcher:
        session.dispatcher.handle_file_drop([str(p) for p in paths])
    console.print(_jobs_table(session, show_live_stats=False))


@app.command()
def codecs(
    video_format: Optional[str] = typer.Option(None, "--format", "-f", help="Only codecs for this container"),
):
    """List the video codecs available on this machine."""
    available = CodecProbe().available_codecs()
    if video_format:
        available = [c for c in available if video_format.lower() in c.formats]
    console.print(render_codecs_table(available))


if __name__ == "__main__":
    app()
