"""
Interface layer package.

Command-line entry point, help screen and result formatters.
"""
