"""Data module - raw loading, GDD lookup, and wide -> long reshaping."""

from eab_edna.data.gdd import (
    build_gdd_lookup,
    lookup_gdd,
    normalize_day_key,
    validate_gdd_table
)

from eab_edna.data.loader import (
    celsius_to_fahrenheit_gdd,
    load_detection_matrix,
    load_gdd_table,
    load_phenology
)

from eab_edna.data.reshape import (
    LONG_COLUMNS,
    parse_sample_column,
    reshape_detections,
    summarize_records
)

__all__ = [
    # GDD lookup
    'build_gdd_lookup',
    'lookup_gdd',
    'normalize_day_key',
    'validate_gdd_table',
    # Loaders
    'celsius_to_fahrenheit_gdd',
    'load_detection_matrix',
    'load_gdd_table',
    'load_phenology',
    # Reshaper
    'LONG_COLUMNS',
    'parse_sample_column',
    'reshape_detections',
    'summarize_records'
]
