"""Streaming item sinks usable as pipeline stages."""

import csv
import json
from pathlib import Path
from typing import TextIO

from .http import Item


class JsonLinesWriterPipeline:
    """Writes items to JSONL format one at a time."""

    def __init__(
        self,
        output_path: str | Path,
        exclude_fields: tuple[str, ...] = (),
    ):
        self.output_path = Path(output_path)
        self.exclude_fields = exclude_fields
        self._file: TextIO | None = None
        self._count = 0

    def open_spider(self, spider):
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_path, "w", encoding="utf-8")

    def close_spider(self, spider):
        if self._file is not None:
            self._file.close()
            self._file = None

    def process_item(self, item: Item, spider) -> Item:
        if self._file is None:
            raise RuntimeError("JsonLinesWriterPipeline is not open")

        output = {k: v for k, v in item.items() if k not in self.exclude_fields}
        self._file.write(json.dumps(output, ensure_ascii=False, default=str) + "\n")
        self._file.flush()
        self._count += 1
        return item

    @property
    def count(self) -> int:
        """Number of items written."""
        return self._count


class CsvWriterPipeline:
    """Writes items as CSV rows. Columns are fixed by the first item."""

    def __init__(self, output_path: str | Path, delimiter: str = ","):
        self.output_path = Path(output_path)
        self.delimiter = delimiter
        self._file: TextIO | None = None
        self._writer: csv.DictWriter | None = None
        self._count = 0

    def open_spider(self, spider):
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_path, "w", encoding="utf-8", newline="")

    def close_spider(self, spider):
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def process_item(self, item: Item, spider) -> Item:
        if self._file is None:
            raise RuntimeError("CsvWriterPipeline is not open")

        if self._writer is None:
            self._writer = csv.DictWriter(
                self._file,
                fieldnames=list(item.keys()),
                delimiter=self.delimiter,
                extrasaction="ignore",
            )
            self._writer.writeheader()

        self._writer.writerow(item)
        self._file.flush()
        self._count += 1
        return item

    @property
    def count(self) -> int:
        return self._count
