"""
Tecspacs: Command Handlers
==========================

What:  One async handler per CLI command.
How:   Handlers take the injected StorageManager plus plain arguments, print
       human-readable output to stdout and return a process exit code.
       Errors are raised, not printed; main() maps them to exit codes.
"""

from typing import Any, Iterable, List, Mapping, Optional

from tecspacs.exceptions import ValidationError


def clean_name(name: Optional[str], resource: str) -> str:
    """Trim a user-supplied name; an empty result is a ValidationError."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(message=f"Empty {resource} name provided", field="name")
    return cleaned


def collect_updates(**fields: Any) -> dict:
    """Keep only the options the user actually passed."""
    return {key: value for key, value in fields.items() if value is not None}


def print_warnings(warnings: List[str]) -> None:
    for warning in warnings:
        print(f"Warning: {warning}")


def print_fields(title: str, fields: Iterable[tuple]) -> None:
    print(title)
    for label, value in fields:
        print(f"  {label + ':':<14}{_cell(value)}")


def _cell(value: Any) -> str:
    return "-" if value is None or value == "" else str(value)


def print_table(rows: List[Mapping[str, Any]], columns: List[str]) -> None:
    widths = {
        col: max([len(col)] + [len(_cell(row.get(col))) for row in rows])
        for col in columns
    }
    print("  ".join(col.upper().ljust(widths[col]) for col in columns))
    for row in rows:
        print("  ".join(_cell(row.get(col)).ljust(widths[col]) for col in columns))
