"""
Operations package - error mapping and output formatting for the CLI.

Keeps CLI commands thin: each command builds its call, runs it through
run_and_exit, and hands results to a printer.
"""
from .mappers import exit_code_for, run_and_exit

__all__ = ["exit_code_for", "run_and_exit"]
