"""CLI utility functions"""

from .output import (
    console,
    format_batch_result,
    format_component_list,
    format_json,
    print_error,
)

__all__ = [
    'console',
    'format_batch_result',
    'format_component_list',
    'format_json',
    'print_error',
]
