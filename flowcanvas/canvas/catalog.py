"""
Block Catalog for flowcanvas.

Holds the closed set of block types that can be placed on the canvas and
derives each type's port capability from its category:
  - data blocks are sources: output port only
  - transform blocks have both ports
  - visualize blocks are sinks: input port only

The built-in catalog can be customised with a blocks.yaml file next to the
app. Overrides may relabel, re-icon or describe known block types, or hide
them from the palette; they cannot invent new types, because every type
needs a matching config variant.

    blocks:
      - type: database
        label: Warehouse
        icon: Warehouse
      - type: pivot
        hidden: true
"""

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import yaml

from flowcanvas.canvas.block_config import CONFIG_TYPES
from flowcanvas.canvas.errors import UnknownBlockType

logger = logging.getLogger(__name__)

VALID_CATEGORIES = ('data', 'transform', 'visualize')

# Keys a blocks.yaml entry may set
OVERRIDABLE_KEYS = frozenset(['label', 'icon', 'description', 'hidden'])


@dataclass(frozen=True)
class BlockDefinition:
    """A palette entry that nodes are instantiated from."""
    type: str
    label: str
    icon: str
    category: str
    description: str = ""
    inputs: Optional[int] = None
    outputs: Optional[int] = None
    hidden: bool = False

    @property
    def input_count(self) -> int:
        if self.inputs is not None:
            return self.inputs
        return 0 if self.category == 'data' else 1

    @property
    def output_count(self) -> int:
        if self.outputs is not None:
            return self.outputs
        return 0 if self.category == 'visualize' else 1

    @property
    def has_input_port(self) -> bool:
        return self.input_count > 0

    @property
    def has_output_port(self) -> bool:
        return self.output_count > 0

    def to_descriptor(self) -> Dict[str, str]:
        """Serialized form carried by palette drag-and-drop."""
        return {'type': self.type, 'label': self.label, 'icon': self.icon}


DEFAULT_BLOCKS: List[BlockDefinition] = [
    # Data blocks
    BlockDefinition('database', 'Database', 'Database', 'data', 'Select a database connection'),
    BlockDefinition('table', 'Table', 'Table2', 'data', 'Choose a table from the database'),
    BlockDefinition('column', 'Columns', 'Columns', 'data', 'Select specific columns'),
    # Transform blocks
    BlockDefinition('filter', 'Filter', 'Filter', 'transform', 'Filter rows based on conditions'),
    BlockDefinition('group', 'Group By', 'Group', 'transform', 'Group data by columns'),
    BlockDefinition('sort', 'Sort', 'ArrowDownUp', 'transform', 'Sort data by column'),
    BlockDefinition('calculate', 'Aggregate', 'Calculator', 'transform', 'Apply aggregate functions'),
    BlockDefinition('limit', 'Limit', 'Hash', 'transform', 'Limit number of rows'),
    BlockDefinition('join', 'Join', 'Merge', 'transform', 'Join with another table', inputs=2),
    BlockDefinition('pivot', 'Pivot', 'FlipVertical2', 'transform', 'Pivot table transformation'),
    BlockDefinition('formula', 'Formula', 'FunctionSquare', 'transform', 'Create calculated columns'),
    BlockDefinition('date', 'Date Ops', 'Calendar', 'transform', 'Date transformations'),
    # Visualization blocks
    BlockDefinition('bar-chart', 'Bar Chart', 'BarChart2', 'visualize', 'Compare values across categories'),
    BlockDefinition('line-chart', 'Line Chart', 'LineChart', 'visualize', 'Show trends over time'),
    BlockDefinition('area-chart', 'Area Chart', 'AreaChart', 'visualize', 'Cumulative trends'),
    BlockDefinition('pie-chart', 'Pie Chart', 'PieChart', 'visualize', 'Part-to-whole breakdown'),
    BlockDefinition('scatter-chart', 'Scatter Plot', 'ScatterChart', 'visualize', 'Correlation between two measures'),
    BlockDefinition('kpi-card', 'KPI Card', 'TrendingUp', 'visualize', 'Single headline number'),
]


class BlockCatalog:
    """
    Manages block definitions.

    Responsibilities:
    - Provide the built-in block set
    - Load and validate blocks.yaml overrides
    - Answer port-capability questions for the stores
    - Parse palette drag descriptors back into definitions
    """

    def __init__(self, overrides_path: Path = None,
                 definitions: List[BlockDefinition] = None):
        self.overrides_path = overrides_path
        self.validation_errors: List[str] = []
        self._blocks: Dict[str, BlockDefinition] = {
            b.type: b for b in (definitions if definitions is not None else DEFAULT_BLOCKS)
        }
        for block_type in self._blocks:
            if block_type not in CONFIG_TYPES:
                raise UnknownBlockType(block_type)
        if overrides_path is not None:
            self._apply_overrides(overrides_path)

    # --- Loading ---

    def _validate_override(self, entry: Any, index: int) -> List[str]:
        """Validate a single blocks.yaml entry. Returns list of error messages."""
        if not isinstance(entry, dict):
            return [f"Entry {index}: must be a mapping"]

        errors = []
        block_type = entry.get('type')
        if not block_type:
            return [f"Entry {index}: missing required 'type' property"]
        if block_type not in self._blocks:
            errors.append(f"Entry {index}: unknown block type '{block_type}'")

        unknown = sorted(set(entry) - OVERRIDABLE_KEYS - {'type'})
        if unknown:
            errors.append(f"Block '{block_type}': cannot override {', '.join(unknown)}")

        for key in ('label', 'icon', 'description'):
            if key in entry and not isinstance(entry[key], str):
                errors.append(f"Block '{block_type}': '{key}' must be a string")
        if 'hidden' in entry and not isinstance(entry['hidden'], bool):
            errors.append(f"Block '{block_type}': 'hidden' must be a boolean")
        return errors

    def _apply_overrides(self, path: Path) -> None:
        if not path.exists():
            return

        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            self.validation_errors.append(f"Invalid YAML in {path.name}: {e}")
            logger.warning(f"Failed to parse block catalog {path}: {e}")
            return

        entries = document.get('blocks', []) if isinstance(document, dict) else None
        if not isinstance(entries, list):
            self.validation_errors.append(f"{path.name}: 'blocks' must be a list")
            return

        for i, entry in enumerate(entries):
            errors = self._validate_override(entry, i)
            if errors:
                self.validation_errors.extend(errors)
                continue
            changes = {k: v for k, v in entry.items() if k in OVERRIDABLE_KEYS}
            self._blocks[entry['type']] = replace(self._blocks[entry['type']], **changes)

        for error in self.validation_errors:
            logger.warning(f"Block catalog: {error}")

    # --- Queries ---

    def __contains__(self, block_type: str) -> bool:
        return block_type in self._blocks

    def __iter__(self) -> Iterator[BlockDefinition]:
        return iter(self._blocks.values())

    def __len__(self) -> int:
        return len(self._blocks)

    def get(self, block_type: str) -> BlockDefinition:
        try:
            return self._blocks[block_type]
        except KeyError:
            raise UnknownBlockType(block_type)

    def types(self) -> List[str]:
        return list(self._blocks)

    def palette(self, category: str = None) -> List[BlockDefinition]:
        """Visible blocks, optionally for one category, in catalog order."""
        return [b for b in self._blocks.values()
                if not b.hidden and (category is None or b.category == category)]

    def has_input_port(self, block_type: str) -> bool:
        return self.get(block_type).has_input_port

    def has_output_port(self, block_type: str) -> bool:
        return self.get(block_type).has_output_port

    def parse_descriptor(self, descriptor: Union[str, Dict[str, Any]]) -> BlockDefinition:
        """
        Resolve a serialized palette descriptor into a catalog definition.

        Accepts the dict produced by BlockDefinition.to_descriptor() or its
        JSON encoding. Only 'type' is authoritative; label and icon travel
        along for drag previews.
        """
        if isinstance(descriptor, str):
            try:
                descriptor = json.loads(descriptor)
            except json.JSONDecodeError:
                # A bare type name is also accepted
                return self.get(descriptor)
        if not isinstance(descriptor, dict) or 'type' not in descriptor:
            raise ValueError(f"Malformed block descriptor: {descriptor!r}")
        return self.get(descriptor['type'])
