import subprocess
import json
from pathlib import Path
from typing import Any, Dict

class FFprobeAdapter:
    """Wrapper around ffprobe to describe a media file."""

    @staticmethod
    def _to_float(value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    @staticmethod
    def _to_int(value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    def describe(self, file_path: Path) -> Dict[str, Any]:
        """Executes ffprobe and returns the fields of a discovery event.

        Raises:
            RuntimeError: ffprobe could not run or exited non-zero.
            ValueError: ffprobe output is not valid JSON.
        """
        cmd = [
            "ffprobe",
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(file_path)
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise RuntimeError(f"ffprobe execution failed: {e}") from e
        if result.returncode != 0:
            raise RuntimeError(f"ffprobe failed for {file_path}: {result.stderr}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON parsing failed for {file_path}: {e}") from e

        fmt = data.get("format", {}) or {}
        streams = data.get("streams", []) or []

        # Prefer the video stream; fall back to the first stream naming a codec
        stream = next((s for s in streams if s.get("codec_type") == "video"), None)
        if stream is None:
            stream = next((s for s in streams if s.get("codec_name")), {})

        size = self._to_int(fmt.get("size"))
        if size <= 0:
            try:
                size = file_path.stat().st_size
            except OSError:
                size = 0

        return {
            "name": file_path.name,
            "size_bytes": size,
            "duration_seconds": max(0.0, self._to_float(fmt.get("duration"))),
            "container_format": str(fmt.get("format_name", "")).split(",")[0],
            "codec": stream.get("codec_name", ""),
            "path": str(file_path),
        }
