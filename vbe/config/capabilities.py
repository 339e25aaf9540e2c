"""Container format / codec capability table.

Static part: which codec identifiers each output container admits and the
per-codec quality defaults used to pre-populate the options editor. Dynamic
part: the `CodecInfo` list reported by the engine at runtime, which is
intersected with the selected output format before it is offered.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from vbe.domain.errors import InvalidOptionsError
from vbe.domain.models import CodecInfo, EncodingOptions, QualityMode

if TYPE_CHECKING:
    from vbe.config.models import EncoderSettings

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: Dict[str, List[str]] = {
    "mp4": [
        "h264", "h264_nvenc", "h264_qsv",
        "hevc", "hevc_nvenc", "hevc_qsv",
        "hevc_videotoolbox", "h264_videotoolbox",
    ],
    "webm": ["vp8", "vp9"],
}

DEFAULT_BITRATE_KBPS = 5000


@dataclass(frozen=True)
class CodecDefaults:
    mode: QualityMode
    default_value: int
    min_value: int
    max_value: int

    def in_range(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value


CODEC_DEFAULTS: Dict[str, CodecDefaults] = {
    "h264": CodecDefaults(QualityMode.CRF, 23, 0, 51),
    "hevc": CodecDefaults(QualityMode.CRF, 28, 0, 51),
    "vp9": CodecDefaults(QualityMode.CRF, 31, 0, 63),
}


def base_codec(codec: str) -> str:
    """Strips the hardware suffix: ``hevc_nvenc`` -> ``hevc``."""
    return codec.split("_")[0]


def defaults_for_codec(codec: str) -> Optional[CodecDefaults]:
    return CODEC_DEFAULTS.get(base_codec(codec))


def is_codec_supported(video_format: str, codec: str) -> bool:
    return codec in SUPPORTED_FORMATS.get(video_format, [])


def codecs_for_format(available: Iterable[CodecInfo], video_format: str) -> List[CodecInfo]:
    """Engine-reported codecs that can be muxed into `video_format`, order kept."""
    return [info for info in available if video_format in info.formats]


def select_codec_for_format(
    available: Iterable[CodecInfo],
    video_format: str,
    current: Optional[str],
) -> Optional[str]:
    """Codec to select after a format change.

    Keeps `current` when it is still compatible, otherwise falls back to the
    first compatible entry. Returns None when nothing is compatible.
    """
    compatible = codecs_for_format(available, video_format)
    if not compatible:
        return None
    if current and any(info.name == current for info in compatible):
        return current
    return compatible[0].name


def apply_codec_defaults(settings: "EncoderSettings", codec: str) -> "EncoderSettings":
    """Switches the editor to `codec` and loads that codec's quality defaults."""
    settings.video_codec = codec
    defaults = defaults_for_codec(codec)
    if defaults is None:
        return settings
    settings.quality_mode = defaults.mode
    if defaults.mode == QualityMode.CRF:
        settings.crf_value = defaults.default_value
    else:
        settings.bitrate_kbps = DEFAULT_BITRATE_KBPS
    return settings


def switch_format(
    settings: "EncoderSettings",
    video_format: str,
    available: Iterable[CodecInfo],
) -> "EncoderSettings":
    """Changes the output format and re-selects the codec if it became incompatible.

    Raises:
        InvalidOptionsError: `video_format` is not a supported container.
    """
    video_format = video_format.strip().lower()
    if video_format not in SUPPORTED_FORMATS:
        raise InvalidOptionsError(
            f"unsupported video format: {video_format} (choose from: {', '.join(SUPPORTED_FORMATS)})"
        )
    available = list(available)
    settings.video_format = video_format
    selected = select_codec_for_format(available, video_format, settings.video_codec)
    if selected is None:
        logger.warning(f"No available codec for format {video_format}")
        return settings
    if selected != settings.video_codec:
        logger.debug(f"Codec {settings.video_codec} not usable with {video_format}, switching to {selected}")
        apply_codec_defaults(settings, selected)
    return settings


def validate_options(options: EncodingOptions) -> EncodingOptions:
    """Checks an options payload before any file is touched.

    A zero quality value is replaced by the codec's default (and its default
    mode). Returns the possibly updated copy; the input is never mutated.

    Raises:
        InvalidOptionsError: unsupported format/codec, quality out of range,
            or two-pass requested outside bitrate mode.
    """
    if options.video_format not in SUPPORTED_FORMATS:
        raise InvalidOptionsError(f"unsupported video format: {options.video_format}")
    if not is_codec_supported(options.video_format, options.video_codec):
        raise InvalidOptionsError(
            f"unsupported codec {options.video_codec} for format {options.video_format}"
        )

    defaults = defaults_for_codec(options.video_codec)
    if defaults is not None:
        if options.quality_value == 0:
            options = options.model_copy(
                update={"quality_mode": defaults.mode, "quality_value": defaults.default_value}
            )
        if options.quality_mode == QualityMode.CRF and not defaults.in_range(options.quality_value):
            raise InvalidOptionsError(
                f"quality value {options.quality_value} out of range "
                f"[{defaults.min_value}-{defaults.max_value}] for codec {options.video_codec}"
            )

    if options.quality_mode == QualityMode.BITRATE and options.quality_value <= 0:
        raise InvalidOptionsError("bitrate mode requires a bitrate > 0")

    if options.use_two_pass and options.quality_mode != QualityMode.BITRATE:
        raise InvalidOptionsError("2-pass encoding is only available with bitrate mode")

    return options
