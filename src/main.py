"""
mssqlhop - SQL Server linked server traversal tool.

Run from a source checkout: python src/main.py HOST -c TYPE [ACTION ...]
"""

import sys
from mssqlhop.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
