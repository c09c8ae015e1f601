"""Shared fixtures for rust_project tests."""

import json

import pytest


@pytest.fixture
def repo(tmp_path):
    """Create a small multi-crate Rust source tree.

    Layout::

        repo/a/lib.rs
        repo/a/util/mod.rs
        repo/a/README.md
        repo/b/main.rs
        repo/b/gen/out.rs
        repo/c/lib.rs
    """
    root = tmp_path / "repo"
    (root / "a" / "util").mkdir(parents=True)
    (root / "b" / "gen").mkdir(parents=True)
    (root / "c").mkdir(parents=True)

    (root / "a" / "lib.rs").write_text("pub mod util;\n")
    (root / "a" / "util" / "mod.rs").write_text("pub fn helper() {}\n")
    (root / "a" / "README.md").write_text("# crate a\n")
    (root / "b" / "main.rs").write_text("fn main() { a::util::helper(); }\n")
    (root / "b" / "gen" / "out.rs").write_text("// generated\n")
    (root / "c" / "lib.rs").write_text("pub struct C;\n")
    return root


def make_crate(crate_id, label, include_dirs=(), exclude_dirs=(), deps=()):
    """Build a manifest crate entry."""
    return {
        "crate_id": crate_id,
        "label": label,
        "root_module": f"{include_dirs[0]}/lib.rs" if include_dirs else "",
        "edition": "2021",
        "deps": [{"crate": d, "name": f"dep{d}"} for d in deps],
        "cfg": [],
        "compiler_args": [],
        "target": "x86_64-unknown-linux-gnu",
        "source": {
            "include_dirs": list(include_dirs),
            "exclude_dirs": list(exclude_dirs),
        },
    }


@pytest.fixture
def write_manifest(tmp_path):
    """Return a function that writes crates to a rust-project.json."""

    def _write(crates, name="rust-project.json"):
        path = tmp_path / name
        path.write_text(json.dumps({"crates": crates}))
        return path

    return _write


@pytest.fixture
def two_crate_manifest(repo, write_manifest):
    """Crate A with no deps and crate B depending on A."""
    return write_manifest([
        make_crate(0, "//src:a", include_dirs=[str(repo / "a")]),
        make_crate(1, "//src:b", include_dirs=[str(repo / "b")], deps=[0]),
    ])


@pytest.fixture
def crate_entry():
    """Return the manifest crate builder."""
    return make_crate
