"""Installation tree extraction.

Mirrors a downloaded installation into an output directory. Each file is
classified by extension:

- SKIP: engine binaries, not written at all
- PLACEHOLDER: binary assets, written as a small JSON record with the
  original size and SHA-256
- COPY: everything else, copied byte for byte
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Callable, Iterator
from pathlib import Path

import structlog

from modbase_tools.core.config import ExtractConfig
from modbase_tools.core.errors import PreconditionError
from modbase_tools.core.types import ExtractStats, FileDisposition
from modbase_tools.core.utils import compute_sha256_file

logger = structlog.get_logger()

PLACEHOLDER_NOTE = "Binary file excluded from repository. Metadata only."


def classify(
    path: Path,
    skip_extensions: list[str],
    placeholder_extensions: list[str],
) -> FileDisposition:
    """Disposition of a file from its extension (case-insensitive)."""
    ext = path.suffix.lower()
    if ext in skip_extensions:
        return FileDisposition.SKIP
    if ext in placeholder_extensions:
        return FileDisposition.PLACEHOLDER
    return FileDisposition.COPY


def placeholder_record(path: Path) -> dict[str, int | str]:
    """Size/hash record written in place of a binary file."""
    return {
        "size": path.stat().st_size,
        "sha256": compute_sha256_file(path),
        "note": PLACEHOLDER_NOTE,
    }


def ensure_empty_output(output_dir: Path) -> None:
    """Create the output directory, refusing to write into a non-empty one.

    Raises:
        PreconditionError: If output_dir exists and has any entries
    """
    if output_dir.exists():
        if not output_dir.is_dir() or any(output_dir.iterdir()):
            raise PreconditionError(
                f"Output directory must be empty: {output_dir} "
                f"(remove it first with: rm -rf {output_dir})",
                path=str(output_dir),
            )
    else:
        output_dir.mkdir(parents=True)


class Extractor:
    """Mirror an installation tree with binary assets reduced to metadata."""

    def __init__(
        self,
        config: ExtractConfig | None = None,
        on_file: Callable[[Path, FileDisposition], None] | None = None,
    ):
        """Initialize extractor.

        Args:
            config: Extraction configuration (extension lists)
            on_file: Optional callback per processed file (relative path)
        """
        self.config = config or ExtractConfig()
        self.on_file = on_file

    def classify(self, path: Path) -> FileDisposition:
        return classify(
            path,
            self.config.skip_extensions,
            self.config.placeholder_extensions,
        )

    def walk(self, root: Path) -> Iterator[Path]:
        """Files under root in sorted order, skipping the reserved directory."""
        for entry in sorted(root.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                if entry.name != self.config.reserved_dir:
                    yield from self.walk(entry)
            elif entry.is_file():
                yield entry

    def run(self, input_dir: Path, output_dir: Path) -> ExtractStats:
        """Extract input_dir into output_dir.

        Raises:
            PreconditionError: If input_dir is missing or output_dir is not empty
        """
        if not input_dir.is_dir():
            raise PreconditionError(
                f"Input directory not found: {input_dir}",
                path=str(input_dir),
            )
        ensure_empty_output(output_dir)

        stats = ExtractStats()
        for source in self.walk(input_dir):
            relative = source.relative_to(input_dir)
            disposition = self.classify(source)
            size = source.stat().st_size
            stats.record(disposition, size)

            if disposition is not FileDisposition.SKIP:
                target = output_dir / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                if disposition is FileDisposition.PLACEHOLDER:
                    record = placeholder_record(source)
                    target.write_text(json.dumps(record, indent=2) + "\n", encoding="utf-8")
                else:
                    shutil.copyfile(source, target)

            logger.debug("file_extracted", path=str(relative), disposition=disposition.value)
            if self.on_file:
                self.on_file(relative, disposition)

        logger.info(
            "extraction_complete",
            copied=stats.copied,
            placeholders=stats.placeholders,
            skipped=stats.skipped,
        )
        return stats
