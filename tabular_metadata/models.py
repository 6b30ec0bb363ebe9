"""Data models for tabular semantic model metadata."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


def _join_lines(raw) -> str:
    """TMSL stores multi-line text either as a string or as a list of lines."""
    if raw is None:
        return ""
    if isinstance(raw, list):
        return "\n".join(str(line) for line in raw)
    return str(raw)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Name:
    """The name of a model object. An empty name means "absent"."""
    value: str = ""

    @classmethod
    def of(cls, raw) -> "Name":
        return cls(_join_lines(raw))

    @property
    def is_present(self) -> bool:
        return self.value != ""

    def __bool__(self) -> bool:
        return self.is_present

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Note:
    """Free text attached to an object: description or display folder."""
    value: str = ""

    @classmethod
    def of(cls, raw) -> "Note":
        text = _join_lines(raw)
        return cls(text if text.strip() else "")

    @property
    def is_present(self) -> bool:
        return self.value != ""

    def __bool__(self) -> bool:
        return self.is_present

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Expression:
    """A DAX expression. Whitespace-only expressions are treated as absent."""
    value: str = ""

    @classmethod
    def of(cls, raw) -> "Expression":
        text = _join_lines(raw)
        return cls(text if text.strip() else "")

    @property
    def is_present(self) -> bool:
        return self.value != ""

    def __bool__(self) -> bool:
        return self.is_present

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ColumnRef:
    """Weak reference to a column, by table and column name."""
    table: str
    column: str

    def __str__(self) -> str:
        return f"'{self.table}'[{self.column}]"


class TableSourceType(str, Enum):
    """How the rows of a table are produced."""
    ORDINARY = "Ordinary"
    CALCULATED_TABLE = "CalculatedTable"
    CALCULATION_GROUP = "CalculationGroup"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class Column:
    """A column in a table. ``table`` is the owning table's name."""
    table: str
    name: Name
    data_type: str = "Automatic"
    is_hidden: bool = False
    encoding_hint: str = "Default"
    is_available_in_mdx: bool = True
    is_key: bool = False
    is_nullable: bool = True
    is_unique: bool = False
    keep_unique_rows: bool = False
    sort_by_column_name: Name = field(default_factory=Name)
    is_row_number: bool = False
    state: str = "Ready"
    column_type: str = "Data"
    column_expression: Expression = field(default_factory=Expression)
    display_folder: Note = field(default_factory=Note)
    format_string: str | None = None
    description: Note = field(default_factory=Note)
    # None means the source did not report an explicit (non-inferred) name
    is_name_inferred: bool | None = None
    source_column: Name = field(default_factory=Name)
    group_by_columns: list[Name] = field(default_factory=list)
    is_calculation_group_attribute: bool = False


@dataclass
class Measure:
    """A DAX measure, stored on its home table."""
    table: str
    name: Name
    expression: Expression = field(default_factory=Expression)
    format_string_expression: Expression = field(default_factory=Expression)
    format_string: str | None = None
    data_type: str = "Automatic"
    is_hidden: bool = False
    display_folder: Note = field(default_factory=Note)
    description: Note = field(default_factory=Note)
    detail_rows_expression: Expression = field(default_factory=Expression)
    kpi_status_expression: Expression = field(default_factory=Expression)
    kpi_target_expression: Expression = field(default_factory=Expression)
    kpi_target_format_string: str | None = None
    kpi_trend_expression: Expression = field(default_factory=Expression)


@dataclass
class UserHierarchy:
    """A user hierarchy. ``levels`` holds column names, top level first."""
    table: str
    name: Name
    is_hidden: bool = False
    levels: list[str] = field(default_factory=list)


@dataclass
class CalculationItem:
    name: Name
    expression: Expression = field(default_factory=Expression)
    format_string_expression: Expression = field(default_factory=Expression)
    state: str | None = None
    error_message: str | None = None
    format_string_state: str | None = None
    format_string_error_message: str | None = None
    description: Note = field(default_factory=Note)


@dataclass
class CalculationGroup:
    table: str
    precedence: int = 0
    calculation_items: list[CalculationItem] = field(default_factory=list)


@dataclass
class Table:
    """A table in the model, owning its columns, measures and hierarchies."""
    name: Name
    is_hidden: bool = False
    is_private: bool = False
    is_date_table: bool = False
    is_local_date_table: bool = False
    is_template_date_table: bool = False
    table_type: TableSourceType = TableSourceType.ORDINARY
    table_expression: Expression = field(default_factory=Expression)
    description: Note = field(default_factory=Note)
    columns: list[Column] = field(default_factory=list)
    measures: list[Measure] = field(default_factory=list)
    user_hierarchies: list[UserHierarchy] = field(default_factory=list)
    calculation_group: CalculationGroup | None = None

    def get_column(self, name: str) -> Column | None:
        """Return the first column called ``name``, or None."""
        for column in self.columns:
            if column.name.value == name:
                return column
        return None


@dataclass
class Relationship:
    """A single-column relationship between two existing columns."""
    from_column: ColumnRef
    to_column: ColumnRef
    name: Name = field(default_factory=Name)
    from_cardinality: str = "Many"
    to_cardinality: str = "One"
    is_active: bool = True
    rely_on_referential_integrity: bool = False
    cross_filtering_behavior: str = "OneDirection"
    security_filtering_behavior: str = "OneDirection"
    join_on_date_behavior: str = "DatePartAndTime"
    type: str = "SingleColumn"

    @property
    def from_table(self) -> str:
        return self.from_column.table

    @property
    def to_table(self) -> str:
        return self.to_column.table


@dataclass
class TablePermission:
    """Row filter a role applies to a table. ``table`` is the table name."""
    role: str
    table: str
    filter_expression: Expression = field(default_factory=Expression)


@dataclass
class Role:
    name: Name
    table_permissions: list[TablePermission] = field(default_factory=list)


@dataclass
class Model:
    """Root of an extracted metadata graph."""
    extractor_name: str
    extractor_version: str
    application_name: str | None = None
    application_version: str | None = None
    model_name: Name = field(default_factory=Name)
    culture: str | None = None
    compatibility_level: int | None = None
    compatibility_mode: str | None = None
    default_mode: str = "Import"
    last_processed: datetime | None = None
    last_update: datetime | None = None
    version: int | None = None
    extraction_date: datetime | None = None
    tables: list[Table] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    roles: list[Role] = field(default_factory=list)

    def tables_by_name(self, name: str) -> list[Table]:
        return [t for t in self.tables if t.name.value == name]

    def get_table(self, name: str) -> Table | None:
        matches = self.tables_by_name(name)
        return matches[0] if matches else None

    def get_column(self, ref: ColumnRef) -> Column | None:
        table = self.get_table(ref.table)
        return table.get_column(ref.column) if table else None
