from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from vbe.config.capabilities import SUPPORTED_FORMATS
from vbe.domain.models import QualityMode

DEFAULT_EXTENSIONS = [".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm"]

class GeneralConfig(BaseModel):
    debug: bool = False
    log_dir: str = "."
    log_path: Optional[str] = None
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    notify: bool = True  # Desktop notification when a batch finishes

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("extensions must contain at least one entry")
        return normalized

class EncoderSettings(BaseModel):
    """Editable encoding options; turned into EncodingOptions when a batch starts."""
    video_format: str = "mp4"
    video_codec: str = "h264"
    quality_mode: QualityMode = QualityMode.CRF
    crf_value: int = Field(default=23, ge=0, le=63)
    bitrate_kbps: int = Field(default=5000, gt=0)  # 5 Mbps
    use_two_pass: bool = False
    resize: bool = False
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    output_dir: str = ""
    prefix: str = "encoded_"
    postfix: str = ""
    audio_codec: str = ""
    audio_bitrate_kbps: int = Field(default=0, ge=0)
    audio_sample_rate: int = Field(default=0, ge=0)

    @field_validator("video_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported video format: {v}. Use one of {sorted(SUPPORTED_FORMATS)}")
        return v

    @model_validator(mode="after")
    def validate_resize(self):
        if self.resize and (self.width <= 0 or self.height <= 0):
            raise ValueError("resize requires width and height > 0")
        return self

class UiConfig(BaseModel):
    """Console display configuration."""
    show_live_stats: bool = True

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    encoding: EncoderSettings = Field(default_factory=EncoderSettings)
    ui: UiConfig = Field(default_factory=UiConfig)
