import os
from pathlib import Path
from typing import List, Generator

class FileScanner:
    """Expands a dropped path into the video files it contains."""

    def __init__(self, extensions: List[str]):
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]

    def is_video_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def scan(self, path: Path) -> Generator[Path, None, None]:
        """Yields `path` itself if it is a video file, or the video files below it.

        Hidden files and directories are skipped.

        Raises:
            FileNotFoundError: if `path` does not exist.
        """
        if not path.exists():
            raise FileNotFoundError(f"Path not found: {path}")

        if not path.is_dir():
            if self.is_video_file(path):
                yield path
            return

        for root, dirs, files in os.walk(str(path)):
            root_path = Path(root)

            # Ensure deterministic traversal: sort directories and files
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            files.sort()

            for file_name in files:
                if file_name.startswith("."):
                    continue
                file_path = root_path / file_name
                if self.is_video_file(file_path):
                    yield file_path
