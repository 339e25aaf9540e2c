from typing import Dict, Iterable, Optional
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from vbe.domain.events import BatchFinished, BatchStarted, JobProgressApplied, UserNotice
from vbe.domain.models import CodecInfo, Job, JobStatus
from vbe.infrastructure.event_bus import EventBus
from vbe.pipeline.registry import JobRegistry

NOTICE_STYLES = {
    "info": ("[cyan]i[/]", "cyan"),
    "success": ("[green]✓[/]", "green"),
    "warning": ("[yellow]![/]", "yellow"),
    "error": ("[red]✗[/]", "red"),
}

STATUS_STYLES = {
    JobStatus.PENDING: "dim",
    JobStatus.RUNNING: "cyan",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
}


def render_jobs_table(jobs: Iterable[Job], selected: Optional[Iterable[str]] = None,
                      show_live_stats: bool = True) -> Table:
    selected_ids = set(selected) if selected is not None else None
    table = Table(title="Videos", expand=True)
    if selected_ids is not None:
        table.add_column("", width=1)
    table.add_column("File", ratio=1)
    table.add_column("Size", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Format")
    table.add_column("Status")
    if show_live_stats:
        table.add_column("Stats", justify="right")

    for job in jobs:
        style = STATUS_STYLES[job.status]
        status = f"[{style}]{job.status.value}[/]"
        if job.status == JobStatus.RUNNING:
            status += f" {job.progress_percent:5.1f}%"
        elif job.status == JobStatus.FAILED and job.error_message:
            status += f" [dim]{job.error_message}[/]"

        row = []
        if selected_ids is not None:
            row.append("•" if job.id in selected_ids else "")
        row.extend([job.name, job.display_size, job.display_duration, job.display_format, status])
        if show_live_stats:
            stats = job.live_stats
            row.append(
                f"{stats.fps:.0f} fps • {stats.bitrate_kbps:.0f} kbps • {stats.speed_factor:.2f}x"
                if stats and job.status == JobStatus.RUNNING else ""
            )
        table.add_row(*row)
    return table


def render_codecs_table(codecs: Iterable[CodecInfo]) -> Table:
    table = Table(title="Video codecs")
    table.add_column("Name")
    table.add_column("Display name")
    table.add_column("Encoding")
    table.add_column("Formats")
    for info in codecs:
        encoding = "CPU encoding" if not info.is_hardware else f"Hardware acceleration ({info.hardware})"
        table.add_row(info.name, info.display_name, encoding, ", ".join(info.formats))
    return table


class ConsoleReporter:
    """Subscribes to EventBus and renders notices and batch progress."""

    def __init__(self, bus: EventBus, registry: JobRegistry, console: Optional[Console] = None):
        self.bus = bus
        self.registry = registry
        self.console = console or Console()
        self.progress: Optional[Progress] = None
        self._overall_task: Optional[TaskID] = None
        self._job_tasks: Dict[str, TaskID] = {}
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(UserNotice, self.on_notice)
        self.bus.subscribe(BatchStarted, self.on_batch_started)
        self.bus.subscribe(JobProgressApplied, self.on_job_progress)
        self.bus.subscribe(BatchFinished, self.on_batch_finished)

    def on_notice(self, event: UserNotice):
        icon, style = NOTICE_STYLES.get(event.level, NOTICE_STYLES["info"])
        line = f"{icon} [{style}]{event.title}[/]"
        if event.description:
            line += f" [dim]{event.description}[/]"
        self.console.print(line)

    def on_batch_started(self, event: BatchStarted):
        self.progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>5.1f}%"),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._overall_task = self.progress.add_task("[bold]Overall[/]", total=100)
        self._job_tasks = {}
        for job_id in event.job_ids:
            job = self.registry.get(job_id)
            if job is not None:
                self._job_tasks[job_id] = self.progress.add_task(job.name, total=100)
        self.progress.start()

    def on_job_progress(self, event: JobProgressApplied):
        if self.progress is None:
            return
        task_id = self._job_tasks.get(event.job_id)
        if task_id is not None:
            completed = 100.0 if event.status == JobStatus.COMPLETED.value else event.progress_percent
            self.progress.update(task_id, completed=completed)
        if self._overall_task is not None:
            self.progress.update(self._overall_task, completed=event.overall_percent)

    def on_batch_finished(self, event: BatchFinished):
        if self.progress is None:
            return
        if self._overall_task is not None:
            self.progress.update(self._overall_task, completed=self.registry.overall_percent)
        self.progress.stop()
        self.progress = None
        self._overall_task = None
        self._job_tasks = {}
