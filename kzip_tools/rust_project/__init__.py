"""Convert a rust-project.json crate manifest into kzip compilation units.

Each crate becomes one compilation unit holding its own source files and
every .rs file under the source dirs of its transitive dependencies, with
file contents stored in the kzip by SHA-256 digest.
"""

__version__ = "0.1.0"
