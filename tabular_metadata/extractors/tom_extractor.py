"""Graph extractor — turns a TMSL database definition into a metadata Model.

The source graph is the JSON database object returned by a tabular server
(or stored in ``model.bim``). It is only read, never modified. Every
cross-reference in the produced Model (relationship endpoints, hierarchy
levels, role permissions) is resolved by name against objects that were
already built, never by carrying over source objects.
"""

import logging
import re
from datetime import datetime, timezone

from .. import __title__, __version__
from ..errors import ReferenceResolutionError
from ..models import (
    CalculationGroup,
    CalculationItem,
    Column,
    ColumnRef,
    Expression,
    Measure,
    Model,
    Name,
    Note,
    Relationship,
    Role,
    Table,
    TablePermission,
    TableSourceType,
    UserHierarchy,
)

logger = logging.getLogger(__name__)

LOCAL_DATE_TABLE_ANNOTATION = "__PBI_LocalDateTable"
TEMPLATE_DATE_TABLE_ANNOTATION = "__PBI_TemplateDateTable"
TIME_DATA_CATEGORY = "Time"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_model(
    database: dict | None,
    application_name: str | None = None,
    application_version: str | None = None,
) -> Model:
    """Extract a Model from a TMSL database definition.

    Args:
        database: The database object (``{"name", "model": {...}, ...}``).
            When None, an empty Model carrying only the extractor identity is
            returned.
        application_name: Name of the calling application.
        application_version: Version of the calling application.

    Raises:
        ReferenceResolutionError: A relationship, hierarchy level or role
            permission refers to a table or column that is missing or ambiguous,
            or two source tables share a name.
    """
    return TomExtractor(database, application_name, application_version).model


# ---------------------------------------------------------------------------
# Extractor class
# ---------------------------------------------------------------------------

class TomExtractor:
    """Walks a TMSL database definition and populates a Model."""

    def __init__(
        self,
        database: dict | None,
        application_name: str | None = None,
        application_version: str | None = None,
    ):
        self.database = database
        self.model = Model(extractor_name=__title__, extractor_version=__version__)
        if database is not None:
            self.model.application_name = application_name
            self.model.application_version = application_version
            self._source_model = database.get("model", {})
            self._populate_model()

    def _populate_model(self) -> None:
        source_tables = self._source_model.get("tables", [])
        source_relationships = self._source_model.get("relationships", [])

        # Source-side index used only for date table inference
        self._source_columns = {
            t.get("name", ""): {c.get("name", ""): c for c in t.get("columns", [])}
            for t in source_tables
        }

        for t in source_tables:
            self._add_table(t, source_relationships)

        for r in source_relationships:
            self._add_relationship(r)

        for r in self._source_model.get("roles", []):
            self._add_role(r)

        self.model.model_name = Name.of(self.database.get("name"))
        self.model.default_mode = _pascal(self._source_model.get("defaultMode"), "Import")
        self.model.culture = self._source_model.get("culture")
        self.model.compatibility_level = self.database.get("compatibilityLevel")
        self.model.compatibility_mode = _pascal(self.database.get("compatibilityMode"), "Unknown")
        self.model.last_processed = _parse_timestamp(self.database.get("lastProcessed"))
        self.model.last_update = _parse_timestamp(self.database.get("lastUpdate"))
        self.model.version = self.database.get("version")
        self.model.extraction_date = datetime.now(timezone.utc)

        logger.info(
            f"Extracted: {len(self.model.tables)} tables, "
            f"{sum(len(t.measures) for t in self.model.tables)} measures, "
            f"{len(self.model.relationships)} relationships, {len(self.model.roles)} roles"
        )

    # -----------------------------------------------------------------------
    # Tables
    # -----------------------------------------------------------------------

    def _add_table(self, t: dict, source_relationships: list[dict]) -> None:
        table_name = t.get("name", "")
        if self.model.tables_by_name(table_name):
            raise ReferenceResolutionError("table", f"'{table_name}'", 2)
        partitions = t.get("partitions") or []
        source = (partitions[0].get("source") or {}) if partitions else {}
        source_type = source.get("type")

        if source_type == "calculated":
            table_type = TableSourceType.CALCULATED_TABLE
        elif source_type == "calculationGroup":
            table_type = TableSourceType.CALCULATION_GROUP
        else:
            table_type = TableSourceType.ORDINARY

        annotations = {a.get("name"): a.get("value") for a in t.get("annotations", [])}

        table = Table(
            name=Name.of(table_name),
            is_hidden=t.get("isHidden", False),
            is_private=t.get("isPrivate", False),
            is_local_date_table=annotations.get(LOCAL_DATE_TABLE_ANNOTATION) == "true",
            is_template_date_table=annotations.get(TEMPLATE_DATE_TABLE_ANNOTATION) == "true",
            table_type=table_type,
            table_expression=Expression.of(
                source.get("expression") if table_type is TableSourceType.CALCULATED_TABLE else None
            ),
            description=Note.of(t.get("description")),
            is_date_table=self._is_date_table(t, source_relationships),
        )
        logger.debug(f"  Table {table_name}: type={table_type.value}, date_table={table.is_date_table}")

        for c in t.get("columns", []):
            table.columns.append(_create_column(table_name, c))
        for m in t.get("measures", []):
            table.measures.append(_create_measure(table_name, m))
        for h in t.get("hierarchies", []):
            table.user_hierarchies.append(_create_user_hierarchy(table, h))

        calc_group = t.get("calculationGroup")
        if calc_group is not None:
            table.calculation_group = CalculationGroup(
                table=table_name,
                precedence=calc_group.get("precedence", 0),
                calculation_items=[
                    _create_calculation_item(i) for i in calc_group.get("calculationItems", [])
                ],
            )
            # Heuristic: the first non row-number column is the attribute
            # column that exposes the calculation items.
            for column in table.columns:
                if not column.is_row_number:
                    column.is_calculation_group_attribute = True
                    break

        self.model.tables.append(table)

    def _is_date_table(self, t: dict, source_relationships: list[dict]) -> bool:
        """Classify a table as a date table, first matching rule wins.

        1. The table's data category is "Time".
        2. A key column has the dateTime data type.
        3. An active relationship lands on this table on a "one" end whose
           column has the dateTime data type.
        """
        if t.get("dataCategory") == TIME_DATA_CATEGORY:
            return True

        if any(c.get("isKey", False) and c.get("dataType") == "dateTime" for c in t.get("columns", [])):
            return True

        table_name = t.get("name", "")
        for r in source_relationships:
            if not r.get("isActive", True):
                continue
            if (
                r.get("toTable") == table_name
                and r.get("toCardinality", "one") == "one"
                and self._source_data_type(table_name, r.get("toColumn")) == "dateTime"
            ):
                return True
            if (
                r.get("fromTable") == table_name
                and r.get("fromCardinality", "many") == "one"
                and self._source_data_type(table_name, r.get("fromColumn")) == "dateTime"
            ):
                return True
        return False

    def _source_data_type(self, table_name: str, column_name: str | None) -> str | None:
        column = self._source_columns.get(table_name, {}).get(column_name)
        return column.get("dataType", "automatic") if column else None

    # -----------------------------------------------------------------------
    # Relationships and roles
    # -----------------------------------------------------------------------

    def _resolve_column(self, table_name: str, column_name: str) -> ColumnRef:
        table = _single(self.model.tables_by_name(table_name), "table", f"'{table_name}'")
        columns = [c for c in table.columns if c.name.value == column_name]
        _single(columns, "column", f"'{table_name}'[{column_name}]")
        return ColumnRef(table_name, column_name)

    def _add_relationship(self, r: dict) -> None:
        from_column = self._resolve_column(r.get("fromTable", ""), r.get("fromColumn", ""))
        to_column = self._resolve_column(r.get("toTable", ""), r.get("toColumn", ""))

        self.model.relationships.append(Relationship(
            from_column=from_column,
            to_column=to_column,
            name=Name.of(r.get("name")),
            from_cardinality=_pascal(r.get("fromCardinality"), "Many"),
            to_cardinality=_pascal(r.get("toCardinality"), "One"),
            is_active=r.get("isActive", True),
            rely_on_referential_integrity=r.get("relyOnReferentialIntegrity", False),
            cross_filtering_behavior=_pascal(r.get("crossFilteringBehavior"), "OneDirection"),
            security_filtering_behavior=_pascal(r.get("securityFilteringBehavior"), "OneDirection"),
            join_on_date_behavior=_pascal(r.get("joinOnDateBehavior"), "DatePartAndTime"),
            type=_pascal(r.get("type"), "SingleColumn"),
        ))

    def _add_role(self, r: dict) -> None:
        role_name = r.get("name", "")
        role = Role(name=Name.of(role_name))
        for p in r.get("tablePermissions", []):
            table_name = p.get("name", "")
            table = _single(self.model.tables_by_name(table_name), "table", f"'{table_name}'")
            role.table_permissions.append(TablePermission(
                role=role_name,
                table=table.name.value,
                filter_expression=Expression.of(p.get("filterExpression")),
            ))
        self.model.roles.append(role)


# ---------------------------------------------------------------------------
# Object builders
# ---------------------------------------------------------------------------

def _create_column(table_name: str, c: dict) -> Column:
    column_type = c.get("type", "data")
    column = Column(
        table=table_name,
        name=Name.of(c.get("name")),
        data_type=_pascal(c.get("dataType"), "Automatic"),
        is_hidden=c.get("isHidden", False),
        encoding_hint=_pascal(c.get("encodingHint"), "Default"),
        is_available_in_mdx=c.get("isAvailableInMdx", True),
        is_key=c.get("isKey", False),
        is_nullable=c.get("isNullable", True),
        is_unique=c.get("isUnique", False),
        keep_unique_rows=c.get("keepUniqueRows", False),
        sort_by_column_name=Name.of(c.get("sortByColumn")),
        is_row_number=column_type == "rowNumber",
        state=_pascal(c.get("state"), "Ready"),
        column_type=_pascal(column_type, "Data"),
        column_expression=Expression.of(c.get("expression") if column_type == "calculated" else None),
        display_folder=Note.of(c.get("displayFolder")),
        format_string=c.get("formatString"),
        description=Note.of(c.get("description")),
    )

    # Only an explicit, non-inferred name is recorded; inferred names leave
    # both fields unset.
    if column_type == "calculatedTableColumn" and not c.get("isNameInferred", False):
        column.is_name_inferred = False
        column.source_column = Name.of(c.get("sourceColumn"))

    group_by = (c.get("relatedColumnDetails") or {}).get("groupByColumns") or []
    column.group_by_columns.extend(Name.of(g.get("groupingColumn")) for g in group_by)

    return column


def _create_measure(table_name: str, m: dict) -> Measure:
    format_string_definition = m.get("formatStringDefinition") or {}
    detail_rows_definition = m.get("detailRowsDefinition") or {}
    kpi = m.get("kpi") or {}
    return Measure(
        table=table_name,
        name=Name.of(m.get("name")),
        expression=Expression.of(m.get("expression")),
        format_string_expression=Expression.of(format_string_definition.get("expression")),
        format_string=m.get("formatString"),
        data_type=_pascal(m.get("dataType"), "Automatic"),
        is_hidden=m.get("isHidden", False),
        display_folder=Note.of(m.get("displayFolder")),
        description=Note.of(m.get("description")),
        detail_rows_expression=Expression.of(detail_rows_definition.get("expression")),
        kpi_status_expression=Expression.of(kpi.get("statusExpression")),
        kpi_target_expression=Expression.of(kpi.get("targetExpression")),
        kpi_target_format_string=kpi.get("targetFormatString"),
        kpi_trend_expression=Expression.of(kpi.get("trendExpression")),
    )


def _create_user_hierarchy(table: Table, h: dict) -> UserHierarchy:
    """Build a hierarchy from the top level down, against columns already on ``table``."""
    hierarchy = UserHierarchy(
        table=table.name.value,
        name=Name.of(h.get("name")),
        is_hidden=h.get("isHidden", False),
    )
    for level in sorted(h.get("levels", []), key=lambda lv: lv.get("ordinal", 0)):
        column_name = level.get("column", "")
        matches = [c for c in table.columns if c.name.value == column_name]
        column = _single(matches, "hierarchy level column", f"'{table.name}'[{column_name}]")
        hierarchy.levels.append(column.name.value)
    return hierarchy


def _create_calculation_item(i: dict) -> CalculationItem:
    format_string_definition = i.get("formatStringDefinition")
    item = CalculationItem(
        name=Name.of(i.get("name")),
        expression=Expression.of(i.get("expression")),
        state=_pascal(i.get("state"), "Ready"),
        error_message=i.get("errorMessage"),
        description=Note.of(i.get("description")),
    )
    if format_string_definition is not None:
        item.format_string_expression = Expression.of(format_string_definition.get("expression"))
        item.format_string_state = _pascal(format_string_definition.get("state"), "Ready")
        item.format_string_error_message = format_string_definition.get("errorMessage")
    return item


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def _single(matches: list, kind: str, name: str):
    """Return the only element of ``matches`` or raise ReferenceResolutionError."""
    if len(matches) != 1:
        raise ReferenceResolutionError(kind, name, len(matches))
    return matches[0]


def _pascal(value: str | None, default: str) -> str:
    """Render a TMSL enum value (``dateTime``) as its TOM name (``DateTime``)."""
    if not value:
        return default
    return value[0].upper() + value[1:]


_FRACTION = re.compile(r"\.(\d+)")


def _parse_timestamp(value) -> datetime | None:
    """Parse a TMSL timestamp. Naive values are server UTC times."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        # fromisoformat on 3.10 only takes 3 or 6 fraction digits
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), str(value).strip(), count=1)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
