"""Batch encode orchestration.

The controller turns the current selection and the editor settings into one
call to the engine's batch-encode operation, and converts the call's failure
into job-state and aggregate corrections. Per-job completion is never read
from that call: it is observed only through progress events, which the
dispatcher applies to the registry while the call is in flight.
"""

import logging
from typing import List, Optional, Sequence, TYPE_CHECKING

from vbe.config.capabilities import apply_codec_defaults, codecs_for_format, select_codec_for_format, switch_format
from vbe.config.models import EncoderSettings
from vbe.domain.errors import BatchEncodeError, BatchInProgressError, NoSelectionError
from vbe.domain.events import BatchFinished, BatchStarted, UserNotice
from vbe.domain.models import CodecInfo, EncodingOptions, QualityMode
from vbe.infrastructure.event_bus import EventBus
from vbe.pipeline.registry import JobRegistry

if TYPE_CHECKING:
    from vbe.infrastructure.engine import FFmpegEngine


class EncodingController:
    """Starts batches and applies their success/failure transitions."""

    def __init__(self, registry: JobRegistry, engine: "FFmpegEngine", event_bus: EventBus,
                 notify_on_finish: bool = True):
        self.registry = registry
        self.engine = engine
        self.event_bus = event_bus
        self.notify_on_finish = notify_on_finish
        self.encode_in_progress = False
        self.logger = logging.getLogger(__name__)

    def _notice(self, level: str, title: str, description: str = ""):
        self.event_bus.publish(UserNotice(level=level, title=title, description=description))

    @staticmethod
    def build_options(settings: EncoderSettings) -> EncodingOptions:
        """Freezes the editor settings into the payload sent to the engine."""
        bitrate_mode = settings.quality_mode == QualityMode.BITRATE
        return EncodingOptions(
            video_format=settings.video_format,
            video_codec=settings.video_codec,
            quality_mode=settings.quality_mode,
            quality_value=settings.bitrate_kbps if bitrate_mode else settings.crf_value,
            use_two_pass=bitrate_mode and settings.use_two_pass,
            resize=settings.resize,
            width=settings.width,
            height=settings.height,
            output_dir=settings.output_dir,
            prefix=settings.prefix,
            postfix=settings.postfix,
            audio_codec=settings.audio_codec,
            audio_bitrate_kbps=settings.audio_bitrate_kbps,
            audio_sample_rate=settings.audio_sample_rate,
        )

    def discover(self, paths: Sequence[str]):
        """Asks the engine to describe `paths`; results arrive as discovery events."""
        self.logger.info(f"DISCOVERY_REQUEST: {len(paths)} path(s)")
        self.engine.discover_files(list(paths))

    def load_codecs(self, settings: EncoderSettings, video_format: Optional[str] = None) -> List[CodecInfo]:
        """Engine codecs usable with the selected format.

        `video_format`, when given, becomes the selected format first. If the
        selected codec is not among the compatible codecs, the first one is
        selected and its quality defaults loaded into `settings`.

        Raises:
            InvalidOptionsError: `video_format` is not a supported container.
        """
        try:
            available = self.engine.list_available_codecs()
        except Exception as e:
            self.logger.error(f"Codec listing failed: {e}")
            self._notice("error", "Failed to load codec info", str(e))
            if video_format is not None:
                switch_format(settings, video_format, [])
            return []

        if video_format is not None:
            switch_format(settings, video_format, available)
        compatible = codecs_for_format(available, settings.video_format)
        selected = select_codec_for_format(compatible, settings.video_format, settings.video_codec)
        if selected is not None and selected != settings.video_codec:
            self.logger.info(f"CODEC_RESELECTED: {settings.video_codec} -> {selected}")
            apply_codec_defaults(settings, selected)
        return compatible

    def start_batch(self, settings: EncoderSettings):
        """Encodes every selected job with the given settings.

        Raises:
            BatchInProgressError: a batch call is already in flight.
            NoSelectionError: nothing is selected; the engine is not called.
            BatchEncodeError: the engine's batch call failed. Selected jobs
                still RUNNING are FAILED and the overall percentage is 0.
        """
        if self.encode_in_progress:
            raise BatchInProgressError("An encoding batch is already running")

        selected = self.registry.selected_jobs()
        if not selected:
            self._notice("warning", "Select videos to encode.")
            raise NoSelectionError("No videos selected")

        job_ids = [job.id for job in selected]
        paths = [job.path for job in selected]

        self.registry.reset_overall()
        self.registry.reset_for_batch(job_ids)
        options = self.build_options(settings)

        self.logger.info(
            f"BATCH_START: {len(paths)} file(s) format={options.video_format} "
            f"codec={options.video_codec} mode={options.quality_mode.value} "
            f"value={options.quality_value} two_pass={options.use_two_pass}"
        )

        self.encode_in_progress = True
        self.event_bus.publish(BatchStarted(job_ids=job_ids))
        try:
            self.engine.start_batch_encode(paths, options)
        except Exception as e:
            message = getattr(e, "message", "") or str(e) or "Unknown error occurred."
            detail = getattr(e, "detail", "") or ""
            self.registry.reset_overall()
            failed = self.registry.mark_failed(job_ids, error_message=message)
            self.logger.error(f"BATCH_FAILED: {message} (failed_jobs={len(failed)})")
            if detail:
                self.logger.debug(f"BATCH_FAILED_DETAIL: {detail}")
            self._notice("error", "Encoding failed", message)
            self.event_bus.publish(BatchFinished(job_ids=job_ids, success=False, error_message=message))
            raise BatchEncodeError(message, detail=detail) from e
        finally:
            self.encode_in_progress = False

        self.logger.info(f"BATCH_END: overall={self.registry.overall_percent:.1f}%")
        self._notice("success", "Encoding completed.")
        self.event_bus.publish(BatchFinished(job_ids=job_ids, success=True))
        if self.notify_on_finish:
            self.engine.notify_user("Encoding completed", f"{len(paths)} file(s) processed")

    def stop_batch(self):
        """Cancellation intent for the running batch.

        The engine offers no cancellation, so nothing is stopped.
        """
        self.logger.info("BATCH_STOP_REQUESTED: cancellation is not supported by the engine")
