# cli/ui - rich console output
from .console import (
    console,
    err_console,
    print_error,
    print_query_result,
    print_refresh_report,
    print_success,
    print_summary,
    print_warning,
    setup_logging,
)

__all__ = [
    "console",
    "err_console",
    "setup_logging",
    "print_success",
    "print_error",
    "print_warning",
    "print_refresh_report",
    "print_query_result",
    "print_summary",
]
