from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from lshsig._config.config import DEFAULT_BATCH_SIZE

try:
    import pyarrow as pa  # type: ignore[import-not-found]
    import pyarrow.parquet as pq  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - optional dependency
    pa = None  # type: ignore[assignment]
    pq = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

SIGNATURE_COLUMN = "signature"

SignatureBatch = Tuple[List[Any], List[Optional[List[int]]]]


def _require_pyarrow() -> None:
    if pq is None:
        raise ImportError(
            "pyarrow is required to read and write Parquet files. "
            "Install it via `pip install lshsig[parquet]`."
        )


def _open(source: Path | str) -> "pq.ParquetFile":
    _require_pyarrow()
    path = Path(source).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Parquet source '{path}' does not exist")
    return pq.ParquetFile(path)


def parquet_column_type(source: Path | str, column: str) -> "pa.DataType":
    """Return the Arrow type of ``column`` in ``source``."""
    schema = _open(source).schema_arrow
    index = schema.get_field_index(column)
    if index == -1:
        raise ValueError(f"Column '{column}' was not found in Parquet schema {schema.names}")
    return schema.field(index).type


def iter_parquet_column(
    source: Path | str,
    column: str,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Iterator[List[Any]]:
    """
    Stream the values of one column from a Parquet file.

    The file is read incrementally using ``pyarrow`` so that large datasets can be
    processed without loading the entire table into memory at once. NULL cells
    come back as ``None``; list cells come back as Python lists.

    Parameters
    ----------
    source:
        Path to the Parquet file on disk.
    column:
        Name of the column to read.
    batch_size:
        Number of rows to read per iteration. Larger values trade memory for throughput.

    Yields
    ------
    List[Any]
        The column values of one batch, in file order.

    Raises
    ------
    ImportError
        If ``pyarrow`` is not installed.
    FileNotFoundError
        If the specified file does not exist.
    ValueError
        If the column is missing or ``batch_size`` is not positive.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")

    parquet_file = _open(source)
    schema = parquet_file.schema_arrow
    if schema.get_field_index(column) == -1:
        raise ValueError(f"Column '{column}' was not found in Parquet schema {schema.names}")

    for batch in parquet_file.iter_batches(batch_size=batch_size, columns=[column]):
        if batch.num_rows == 0:
            continue
        yield batch.column(0).to_pylist()


def write_signature_parquet(
    destination: Path | str,
    batches: Iterable[SignatureBatch],
    *,
    column: str,
    column_type: "pa.DataType",
    bit_width: int = 64,
) -> int:
    """
    Write ``(values, signatures)`` batches as a two-column Parquet file.

    The output holds ``column`` with its original type plus a ``signature``
    list column of ``uint64`` (or ``uint32``) band values.

    Returns
    -------
    int
        Number of rows written.
    """
    _require_pyarrow()
    value_type = pa.uint64() if bit_width == 64 else pa.uint32()
    schema = pa.schema(
        [
            pa.field(column, column_type),
            pa.field(SIGNATURE_COLUMN, pa.list_(value_type)),
        ]
    )

    path = Path(destination).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    rows = 0
    with pq.ParquetWriter(path, schema) as writer:
        for values, signatures in batches:
            table = pa.table(
                {
                    column: pa.array(values, type=column_type),
                    SIGNATURE_COLUMN: pa.array(signatures, type=pa.list_(value_type)),
                },
                schema=schema,
            )
            writer.write_table(table)
            rows += table.num_rows
            logger.debug("Wrote %d rows to %s", table.num_rows, path)
    return rows


def read_signatures(source: Path | str) -> List[Optional[Sequence[int]]]:
    """Read back the ``signature`` column of a file written by :func:`write_signature_parquet`."""
    rows: List[Optional[Sequence[int]]] = []
    for values in iter_parquet_column(source, SIGNATURE_COLUMN):
        rows.extend(values)
    return rows
