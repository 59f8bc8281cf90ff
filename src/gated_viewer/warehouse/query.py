"""The one query the viewer may run, and the shape of its result."""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Iterable, Iterator, Mapping

# BigQuery naming rules: project ids are lowercase letters, digits and hyphens
# (optionally "domain:" prefixed); dataset and table ids are letters, digits
# and underscores.  Table ids may also contain hyphens.
_PROJECT_RE = re.compile(r"^(?:[a-z][a-z0-9.-]*:)?[a-z][a-z0-9-]{4,28}[a-z0-9]$")
_DATASET_RE = re.compile(r"^[A-Za-z0-9_]{1,1024}$")
_TABLE_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_-]{0,1023}$")


@dataclasses.dataclass(frozen=True)
class QuerySpec:
    """Statically configured read of one fully qualified table.

    Built once from settings.  Identifiers are checked against BigQuery naming
    rules so no configuration value can alter the statement.
    """

    project: str
    dataset: str
    table: str

    def __post_init__(self) -> None:
        if not _PROJECT_RE.match(self.project):
            raise ValueError(f"Invalid project id: {self.project!r}")
        if not _DATASET_RE.match(self.dataset):
            raise ValueError(f"Invalid dataset id: {self.dataset!r}")
        if not _TABLE_RE.match(self.table):
            raise ValueError(f"Invalid table id: {self.table!r}")

    @property
    def fully_qualified_table(self) -> str:
        return f"{self.project}.{self.dataset}.{self.table}"

    @property
    def sql(self) -> str:
        return f"SELECT * FROM `{self.fully_qualified_table}`"


@dataclasses.dataclass(frozen=True)
class ResultTable:
    """Rows returned by the warehouse, in warehouse order.

    Attributes:
        columns: Column names from the result schema.
        rows:    One mapping per row, column name -> value.
    """

    columns: tuple[str, ...]
    rows: tuple[dict[str, Any], ...]

    @classmethod
    def from_rows(cls, columns: Iterable[str], rows: Iterable[Mapping[str, Any]]) -> ResultTable:
        return cls(columns=tuple(columns), rows=tuple(dict(row) for row in rows))

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)
