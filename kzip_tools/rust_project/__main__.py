"""Module entry point for running kzip_tools.rust_project as a package.

Allows: python -m kzip_tools.rust_project <command>
"""

from kzip_tools.rust_project.cli import main
import sys

if __name__ == '__main__':
    sys.exit(main())
