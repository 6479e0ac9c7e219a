import csv
from collections.abc import Iterable
from pathlib import Path
from types import TracebackType


class OutputWriter:
    """
    Buffered CSV writer: rows are kept in memory and written every `batch_size` rows.
    """

    def __init__(
        self, path: Path, *, header: Iterable[str] | None = None, batch_size: int = 1000
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")

        self.path = path
        self.header = tuple(header) if header else ()
        self.batch_size = batch_size
        self.written = 0
        self._buffer: list[list[str]] = []
        self._file_handler = None
        self._writer = None

    def __enter__(self) -> "OutputWriter":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._buffer)

    def open(self) -> None:
        """Open the file for writing and write the header row."""

        if self._file_handler is not None:
            raise RuntimeError("OutputWriter is already open")

        self._file_handler = open(
            self.path, mode="w", newline="", encoding="utf-8", buffering=1048576
        )
        self._writer = csv.writer(self._file_handler)

        if self.header:
            self._writer.writerow(self.header)

    def close(self) -> None:
        """Flush any remaining data in the buffer and close the file."""

        if self._file_handler is None:
            return

        self.flush()
        self._file_handler.close()
        self._file_handler = None
        self._writer = None

    def flush(self) -> None:
        """Write the buffered rows to the file."""

        if not self._buffer:
            return
        if self._writer is None or self._file_handler is None:
            raise RuntimeError("OutputWriter is not open")

        self._writer.writerows(self._buffer)
        self._file_handler.flush()
        self.written += len(self._buffer)
        self._buffer.clear()

    def add(self, rows: Iterable[list[str]]) -> None:
        """Buffer rows, flushing whenever the batch size is reached."""
        for row in rows:
            self._buffer.append(row)
            if len(self._buffer) >= self.batch_size:
                self.flush()
