"""
Block configuration variants.

Each block type carries its own frozen config dataclass holding only the
fields that mean something for that type. A field left as None (or an empty
tuple) is "unconfigured". CONFIG_TYPES maps every block type in the closed
set to its variant; config_for() and the store use it to keep a node's
config in step with its type.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from flowcanvas.canvas.errors import UnknownBlockType

FILTER_OPERATORS = ('equals', 'contains', 'greater', 'less', 'between')
AGGREGATE_FUNCTIONS = ('SUM', 'AVG', 'COUNT', 'MIN', 'MAX')
SORT_DIRECTIONS = ('asc', 'desc')
JOIN_TYPES = ('inner', 'left', 'right', 'full')
DATE_OPERATIONS = ('extract', 'format', 'diff')
DATE_PARTS = ('year', 'month', 'day', 'quarter', 'week')
CHART_TYPES = (
    'bar', 'line', 'pie', 'area', 'scatter', 'radar', 'donut',
    'funnel', 'treemap', 'heatmap', 'composed', 'kpi', 'gauge',
)
COLOR_SCHEMES = {
    'default': ['#2563eb', '#16a34a', '#f59e0b', '#db2777', '#7c3aed'],
    'ocean': ['#0077b6', '#00b4d8', '#90e0ef', '#caf0f8', '#03045e'],
    'sunset': ['#ff6b6b', '#feca57', '#ff9ff3', '#54a0ff', '#5f27cd'],
    'forest': ['#2d6a4f', '#40916c', '#52b788', '#74c69d', '#95d5b2'],
    'monochrome': ['#212529', '#495057', '#6c757d', '#adb5bd', '#dee2e6'],
}

SUMMARY_SEPARATOR = " • "

# Config fields restricted to a closed set of values (config panel selects)
FIELD_CHOICES: Dict[str, Tuple[str, ...]] = {
    'operator': FILTER_OPERATORS,
    'function': AGGREGATE_FUNCTIONS,
    'direction': SORT_DIRECTIONS,
    'join_type': JOIN_TYPES,
    'operation': DATE_OPERATIONS,
    'part': DATE_PARTS,
    'chart_type': CHART_TYPES,
    'color_scheme': tuple(COLOR_SCHEMES),
}


def _check_choice(name: str, value: Any, choices) -> None:
    if value is not None and value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}; got {value!r}")


@dataclass(frozen=True)
class BlockConfig:
    """Base class for all config variants."""

    def summary_parts(self) -> List[str]:
        return []

    def unconfigured_fields(self) -> List[str]:
        """Names of fields that have not been set yet."""
        return [f.name for f in dataclasses.fields(self)
                if getattr(self, f.name) in (None, ())]

    @property
    def is_configured(self) -> bool:
        return not self.unconfigured_fields()

    def to_dict(self) -> Dict[str, Any]:
        return {k: (list(v) if isinstance(v, tuple) else v)
                for k, v in dataclasses.asdict(self).items()}


# --- Data blocks ---

@dataclass(frozen=True)
class DatabaseConfig(BlockConfig):
    database: Optional[str] = None

    def summary_parts(self):
        return [self.database] if self.database else []


@dataclass(frozen=True)
class TableConfig(BlockConfig):
    table: Optional[str] = None

    def summary_parts(self):
        return [self.table] if self.table else []


@dataclass(frozen=True)
class ColumnsConfig(BlockConfig):
    columns: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'columns', tuple(self.columns))

    def summary_parts(self):
        return [f"{len(self.columns)} columns"] if self.columns else []


# --- Transform blocks ---

@dataclass(frozen=True)
class FilterConfig(BlockConfig):
    column: Optional[str] = None
    operator: Optional[str] = None
    value: Optional[str] = None
    value2: Optional[str] = None

    def __post_init__(self):
        _check_choice('operator', self.operator, FILTER_OPERATORS)

    def unconfigured_fields(self):
        missing = super().unconfigured_fields()
        # Only 'between' needs a second bound
        if self.operator != 'between' and 'value2' in missing:
            missing.remove('value2')
        return missing

    def summary_parts(self):
        if not self.column:
            return []
        return [f"{self.column} {self.operator} {self.value}"]


@dataclass(frozen=True)
class GroupByConfig(BlockConfig):
    columns: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'columns', tuple(self.columns))

    def summary_parts(self):
        return [f"Group: {', '.join(self.columns)}"] if self.columns else []


@dataclass(frozen=True)
class SortConfig(BlockConfig):
    column: Optional[str] = None
    direction: Optional[str] = None

    def __post_init__(self):
        _check_choice('direction', self.direction, SORT_DIRECTIONS)

    def summary_parts(self):
        return [f"Sort: {self.column} {self.direction}"] if self.column else []


@dataclass(frozen=True)
class AggregateConfig(BlockConfig):
    function: Optional[str] = None
    column: Optional[str] = None

    def __post_init__(self):
        _check_choice('function', self.function, AGGREGATE_FUNCTIONS)

    def summary_parts(self):
        return [f"{self.function}({self.column})"] if self.function else []


@dataclass(frozen=True)
class LimitConfig(BlockConfig):
    rows: Optional[int] = None

    def __post_init__(self):
        if self.rows is not None and (isinstance(self.rows, bool) or int(self.rows) != self.rows or self.rows < 0):
            raise ValueError(f"rows must be a non-negative integer; got {self.rows!r}")

    def summary_parts(self):
        return [f"Limit: {self.rows}"] if self.rows else []


@dataclass(frozen=True)
class JoinConfig(BlockConfig):
    join_type: Optional[str] = None
    table: Optional[str] = None
    left_column: Optional[str] = None
    right_column: Optional[str] = None

    def __post_init__(self):
        _check_choice('join_type', self.join_type, JOIN_TYPES)

    def summary_parts(self):
        if not self.table:
            return []
        return [f"{(self.join_type or 'inner').upper()} JOIN {self.table}"]


@dataclass(frozen=True)
class PivotConfig(BlockConfig):
    row_column: Optional[str] = None
    column_column: Optional[str] = None
    value_column: Optional[str] = None


@dataclass(frozen=True)
class FormulaConfig(BlockConfig):
    expression: Optional[str] = None
    output_column: Optional[str] = None


@dataclass(frozen=True)
class DateConfig(BlockConfig):
    column: Optional[str] = None
    operation: Optional[str] = None
    part: Optional[str] = None

    def __post_init__(self):
        _check_choice('operation', self.operation, DATE_OPERATIONS)
        _check_choice('part', self.part, DATE_PARTS)


# --- Visualization blocks ---

@dataclass(frozen=True)
class ChartConfig(BlockConfig):
    chart_type: Optional[str] = None
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    series_column: Optional[str] = None
    color_scheme: str = 'default'
    title: Optional[str] = None
    show_legend: bool = True
    show_grid: bool = True
    stacked: bool = False
    show_data_labels: bool = False

    def __post_init__(self):
        _check_choice('chart_type', self.chart_type, CHART_TYPES)
        _check_choice('color_scheme', self.color_scheme, tuple(COLOR_SCHEMES))

    def unconfigured_fields(self):
        # Cosmetic fields have defaults; only the data mapping counts
        return [name for name in ('chart_type', 'x_axis', 'y_axis')
                if getattr(self, name) is None]

    def summary_parts(self):
        parts = []
        if self.chart_type:
            parts.append(self.chart_type)
        if self.color_scheme != 'default':
            parts.append(self.color_scheme)
        return parts


CONFIG_TYPES: Dict[str, Type[BlockConfig]] = {
    'database': DatabaseConfig,
    'table': TableConfig,
    'column': ColumnsConfig,
    'filter': FilterConfig,
    'group': GroupByConfig,
    'sort': SortConfig,
    'calculate': AggregateConfig,
    'limit': LimitConfig,
    'join': JoinConfig,
    'pivot': PivotConfig,
    'formula': FormulaConfig,
    'date': DateConfig,
    'bar-chart': ChartConfig,
    'line-chart': ChartConfig,
    'area-chart': ChartConfig,
    'pie-chart': ChartConfig,
    'scatter-chart': ChartConfig,
    'kpi-card': ChartConfig,
}

# Chart blocks start with the chart type their name implies
_DEFAULT_CHART_TYPES = {
    'bar-chart': 'bar',
    'line-chart': 'line',
    'area-chart': 'area',
    'pie-chart': 'pie',
    'scatter-chart': 'scatter',
    'kpi-card': 'kpi',
}


def config_type_for(block_type: str) -> Type[BlockConfig]:
    try:
        return CONFIG_TYPES[block_type]
    except KeyError:
        raise UnknownBlockType(block_type)


def config_for(block_type: str) -> BlockConfig:
    """Fresh, unconfigured config for a block type."""
    config_cls = config_type_for(block_type)
    if config_cls is ChartConfig:
        return ChartConfig(chart_type=_DEFAULT_CHART_TYPES[block_type])
    return config_cls()


def update_config(config: BlockConfig, **changes) -> BlockConfig:
    """Return a copy of config with fields replaced; unknown fields raise ValueError."""
    valid = {f.name for f in dataclasses.fields(config)}
    unknown = sorted(set(changes) - valid)
    if unknown:
        raise ValueError(f"{type(config).__name__} has no field(s): {', '.join(unknown)}")
    return dataclasses.replace(config, **changes)


def summarize_config(config: Optional[BlockConfig]) -> str:
    """One-line summary shown under a block's label."""
    if config is None:
        return ""
    return SUMMARY_SEPARATOR.join(config.summary_parts())


def coerce_field_value(config: BlockConfig, name: str, raw: Any) -> Any:
    """
    Convert a raw config-panel value into the type of config field `name`.

    Blank text means "unset" (or the field's default where it has one),
    comma-separated text fills tuple fields, and numeric inputs arrive as
    floats from the browser.
    """
    fields = {f.name: f for f in dataclasses.fields(config)}
    if name not in fields:
        raise ValueError(f"{type(config).__name__} has no field {name!r}")
    field = fields[name]

    if isinstance(field.default, bool):
        return bool(raw)
    if isinstance(getattr(config, name), tuple):
        if isinstance(raw, str):
            return tuple(part.strip() for part in raw.split(',') if part.strip())
        return tuple(raw or ())
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return field.default if field.default is not dataclasses.MISSING else None
    if field.type == Optional[int]:
        return int(raw)
    return raw.strip() if isinstance(raw, str) else raw
